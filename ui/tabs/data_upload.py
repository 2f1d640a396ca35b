"""
Data upload tab for the Fleet Fuel Dashboard.
Lets the analytics run on an exported truck_fuel file instead of the live backend.
"""
import streamlit as st
from typing import Dict, Any
from config import Config
from exceptions import DataValidationError


def tab_data_upload(services: Dict[str, Any]) -> None:
    """Handle the data upload tab functionality."""
    st.header("Data Upload")
    st.caption(f"Required columns: {', '.join(Config.REFUEL_REQUIRED_COLUMNS)}. "
               f"Optional: {', '.join(Config.REFUEL_OPTIONAL_COLUMNS)}.")

    uploaded_file = st.file_uploader("Select Excel/CSV", type=['xlsx', 'xls', 'csv'])

    if uploaded_file:
        try:
            file_id = f"{uploaded_file.name}-{uploaded_file.size}"
            if st.session_state.file_id != file_id:
                data_manager = services['data_manager']
                fuel_records, truck_records = data_manager.load_refuel_file(uploaded_file)
                events = data_manager.parse_refuel_records(fuel_records)
                vehicles = data_manager.parse_vehicle_records(truck_records)
                services['session_manager'].use_uploaded_data(file_id, events, vehicles)
                st.success(f"Loaded {len(events)} refuel records for {len(vehicles)} trucks")

            events, vehicles = services['session_manager'].uploaded_data()
            st.dataframe(
                [{'Truck': e.vehicle_id, 'Created': e.created, 'Odometer (km)': e.odometer_reading,
                  'Fuel (L)': e.fuel_amount, 'Price/L': e.fuel_price} for e in events],
                width="stretch"
            )

        except DataValidationError as e:
            st.error(f"Error: {str(e)}")
