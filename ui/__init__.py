"""
Streamlit presentation layer.
"""
