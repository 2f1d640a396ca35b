"""
Export tab for the Fleet Fuel Dashboard.
Handles exporting the efficiency analysis to Excel format.
"""
import streamlit as st
import pandas as pd
from io import BytesIO
from typing import Dict, Any
from calculations.fuel_efficiency import aggregate_fuel_efficiency, efficiency_frame
from ui_components import load_fleet_data


def build_export_workbook(table: pd.DataFrame, summary: Dict[str, Any]) -> bytes:
    """Excel workbook with the per-truck table and a summary sheet."""
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        table.to_excel(writer, index=False, sheet_name='Efficiency')
        pd.DataFrame([summary]).to_excel(writer, index=False, sheet_name='Summary')
    output.seek(0)
    return output.getvalue()


def tab_export(services: Dict[str, Any]) -> None:
    """Handle the export results tab functionality."""
    st.header("Export")

    events, vehicles = load_fleet_data(services)
    result = aggregate_fuel_efficiency(events, vehicles, services['bounds'], services['thresholds'])

    if not result.has_data:
        st.warning("No efficiency data to export.")
        return

    table = efficiency_frame(result, services['thresholds'])
    st.dataframe(table, width="stretch", hide_index=True)

    summary = {
        'Average (km/L)': round(result.summary.average, 2),
        'Maximum (km/L)': round(result.summary.maximum, 2),
        'Minimum (km/L)': round(result.summary.minimum, 2),
        'Trucks With Data': result.summary.total_vehicles_with_data,
    }

    st.download_button(
        "Download Efficiency Report (Excel)",
        build_export_workbook(table, summary),
        "fuel_efficiency.xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key='download-excel'
    )
    st.download_button(
        "Download CSV",
        table.to_csv(index=False, encoding='utf-8-sig'),
        "fuel_efficiency.csv",
        "text/csv",
        key='download-csv'
    )
