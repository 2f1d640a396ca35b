"""
UI tab modules for the Fleet Fuel Dashboard Streamlit app.
"""
from .efficiency import tab_efficiency
from .expenses import tab_expenses
from .fleet_map import tab_fleet_map
from .data_upload import tab_data_upload
from .export import tab_export

__all__ = [
    'tab_efficiency',
    'tab_expenses',
    'tab_fleet_map',
    'tab_data_upload',
    'tab_export'
]
