"""
Fleet map tab for the Fleet Fuel Dashboard.
Latest GPS position of each truck, polled like the live panels.
"""
import streamlit as st
from typing import Dict, Any
from config import Config
from ui_components import fetch_vehicle_positions


@st.fragment(run_every=Config.GPS_POLL_INTERVAL_SECONDS)
def _fleet_map_panel(services: Dict[str, Any]) -> None:
    client = st.session_state.client
    positions, error = fetch_vehicle_positions(client, client.base_url)

    if error:
        st.error(f"Could not load GPS data from PocketBase: {error}")
    elif not positions:
        st.info("No truck is reporting a GPS position.")
    else:
        moving = sum(1 for p in positions if str(p.status).lower() == 'moving')
        c1, c2 = st.columns(2)
        c1.metric("Trucks Reporting", len(positions))
        c2.metric("Moving", moving)

    fleet_map = services['map_builder'].create_fleet_map(positions)
    st.components.v1.html(fleet_map._repr_html_(), height=600)

    if positions:
        _truck_details(services, {p.vehicle_id: p.plate_label for p in positions})


def _truck_details(services: Dict[str, Any], labels: Dict[str, str]) -> None:
    st.subheader("Truck Details")
    vehicle_id = st.selectbox("Truck", list(labels), format_func=labels.get, key='map_truck')
    if not st.button("Fetch latest fix", key='map_truck_fetch'):
        return

    data_manager = services['data_manager']
    position = data_manager.fetch_vehicle_position(st.session_state.client, vehicle_id)
    if data_manager.last_error:
        st.error(f"Could not load truck {labels[vehicle_id]}: {data_manager.last_error}")
    elif position is None:
        st.info(f"{labels[vehicle_id]} has no GPS fix.")
    else:
        c1, c2, c3 = st.columns(3)
        c1.metric("Status", position.status)
        c2.metric("Speed", f"{position.speed:.1f} km/h")
        c3.metric("Mileage", f"{position.total_mileage:,.0f} km" if position.total_mileage else "N/A")
        st.caption(f"{position.latitude:.6f}, {position.longitude:.6f}"
                   f"{' at ' + position.updated.strftime('%Y-%m-%d %H:%M') if position.updated else ''}")


def tab_fleet_map(services: Dict[str, Any]) -> None:
    """Handle the fleet map tab functionality."""
    st.header("Fleet Map")

    if st.session_state.client is None:
        st.warning("PocketBase is not configured. The fleet map needs the live backend.")
        return

    _fleet_map_panel(services)
