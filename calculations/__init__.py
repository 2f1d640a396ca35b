"""
Fuel analytics calculations: efficiency aggregation and expense reporting.
"""
