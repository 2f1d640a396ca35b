"""
Helpers shared across the data layer, calculations and UI.
"""
