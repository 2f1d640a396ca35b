"""
Fuel efficiency tab for the Fleet Fuel Dashboard.
Shows the efficiency tier distribution and the per-truck km/L table, refreshed on a polling cadence.
"""
import streamlit as st
from typing import Dict, Any
from config import Config
from calculations.fuel_efficiency import aggregate_fuel_efficiency, efficiency_by_truck_type, efficiency_frame
from ui_components import load_fleet_data, show_fetch_error
import shared.utils as utils


@st.fragment(run_every=Config.POLL_INTERVAL_SECONDS)
def _efficiency_panel(services: Dict[str, Any]) -> None:
    events, vehicles = load_fleet_data(services)
    show_fetch_error()
    result = aggregate_fuel_efficiency(events, vehicles, services['bounds'], services['thresholds'])

    if not result.has_data:
        st.info(f"No efficiency data yet. {result.reason}.")
        st.plotly_chart(services['chart_builder'].efficiency_pie(result), use_container_width=True)
        st.caption("Efficiency needs at least two refuels per truck with odometer readings.")
        return

    summary = result.summary
    c1, c2, c3 = st.columns(3)
    c1.metric("Average Efficiency", utils.format_efficiency(summary.average))
    c2.metric("Best Performer", utils.format_efficiency(summary.maximum))
    c3.metric("Needs Attention", utils.format_efficiency(summary.minimum))
    st.caption(f"{summary.total_vehicles_with_data} of {len(vehicles)} trucks have enough odometer data.")

    st.plotly_chart(services['chart_builder'].efficiency_pie(result, services['thresholds']),
                    use_container_width=True)

    table = efficiency_frame(result, services['thresholds'])
    st.plotly_chart(services['chart_builder'].efficiency_bar(table, summary.average), use_container_width=True)

    st.subheader("Efficiency by Truck Type")
    by_type = efficiency_by_truck_type(result, vehicles)
    col1, col2 = st.columns([2, 1])
    col1.plotly_chart(services['chart_builder'].efficiency_by_type(by_type), use_container_width=True)
    col2.dataframe(by_type, width="stretch", hide_index=True)

    st.subheader("Per-Truck Efficiency")
    st.dataframe(table.drop(columns=['Vehicle ID']), width="stretch", hide_index=True)


def tab_efficiency(services: Dict[str, Any]) -> None:
    """Handle the fuel efficiency tab functionality."""
    st.header("Fuel Efficiency")
    st.caption("Fleet performance categorized by km/L efficiency")
    _efficiency_panel(services)
