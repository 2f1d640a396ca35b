"""
UI components and setup functions for the Fleet Fuel Dashboard Streamlit app.
"""
import streamlit as st
import logging
from typing import Dict, Any, List, Optional, Tuple
from config import Config
from exceptions import ConfigurationError
from pocketbase_client import PocketBaseClient
from data_manager import DataManager
from session_manager import SessionManager
from visualizer import ChartBuilder, MapBuilder
from calculations.types import EfficiencyThresholds, RefuelEvent, SegmentBounds, Vehicle, VehiclePosition

logger = logging.getLogger(__name__)


@st.cache_data(ttl=Config.CACHE_TTL_SECONDS, show_spinner=False)
def fetch_fleet_data(_client: PocketBaseClient,
                     base_url: str) -> Tuple[List[RefuelEvent], List[Vehicle], Optional[str]]:
    """Cached fleet fetch; base_url is the cache key since the client is not hashable."""
    data_manager = DataManager()
    events, vehicles = data_manager.fetch_fleet_data(_client)
    return events, vehicles, data_manager.last_error


@st.cache_data(ttl=Config.GPS_POLL_INTERVAL_SECONDS, show_spinner=False)
def fetch_vehicle_positions(_client: PocketBaseClient,
                            base_url: str) -> Tuple[List[VehiclePosition], Optional[str]]:
    data_manager = DataManager()
    positions = data_manager.fetch_vehicle_positions(_client)
    return positions, data_manager.last_error


def refresh_data() -> None:
    """Drop cached fetches so the next render reads the backend again."""
    fetch_fleet_data.clear()
    fetch_vehicle_positions.clear()
    logger.info("Cleared cached fleet data")


def load_fleet_data(services: Dict[str, Any]) -> Tuple[List[RefuelEvent], List[Vehicle]]:
    """Refuel events and trucks from the active source (uploaded file or PocketBase)."""
    session: SessionManager = services['session_manager']
    if session.is_upload_source():
        return session.uploaded_data()

    client = st.session_state.client
    if client is None:
        return [], []
    events, vehicles, error = fetch_fleet_data(client, client.base_url)
    session.set('fetch_error', error)
    session.mark_refreshed()
    return events, vehicles


def show_fetch_error() -> None:
    """Surface the last backend failure above a panel."""
    if st.session_state.get('fetch_error'):
        st.error(f"Could not load data from PocketBase: {st.session_state.fetch_error}")


def _create_client() -> PocketBaseClient:
    return PocketBaseClient(
        Config.POCKETBASE_URL,
        identity=Config.POCKETBASE_IDENTITY,
        password=Config.POCKETBASE_PASSWORD,
    )


def setup_sidebar(session_manager: SessionManager) -> Dict[str, Any]:
    """
    Setup and configure the sidebar with data source and analysis parameters.

    Returns:
        Dictionary with services and parameters. The client may be None if the
        backend is not configured; the dictionary structure is always returned.
    """
    st.sidebar.header("⚙️ Settings")

    st.sidebar.subheader("Data Source")
    if st.session_state.client is None:
        try:
            st.session_state.client = _create_client()
        except ConfigurationError as e:
            st.sidebar.warning(f"⚠️ {e}. Live data is disabled; upload a refuel export instead.")

    if session_manager.is_upload_source():
        st.sidebar.info(f"Using uploaded file: {st.session_state.file_id}")
        if st.sidebar.button("Switch to live data"):
            session_manager.clear_data()
            st.rerun()
    elif st.session_state.client is not None:
        st.sidebar.caption(f"PocketBase: {st.session_state.client.base_url}")
        if st.sidebar.button("Check connection"):
            ok, message = st.session_state.client.health()
            if ok:
                st.sidebar.success(message)
            else:
                st.sidebar.error(f"PocketBase unreachable: {message}")

    if st.sidebar.button("🔄 Refresh", help="Fetch the latest records from PocketBase."):
        refresh_data()
        st.rerun()

    if st.session_state.last_refreshed is not None:
        st.sidebar.caption(f"Last refreshed: {st.session_state.last_refreshed:%Y-%m-%d %H:%M:%S} UTC")

    with st.sidebar.expander("Efficiency Parameters"):
        min_km = st.number_input("Min segment distance (km)", 0.0, 100.0, float(Config.MIN_SEGMENT_KM), 1.0)
        max_km = st.number_input("Max segment distance (km)", 100.0, 10000.0, float(Config.MAX_SEGMENT_KM), 100.0)
        excellent = st.number_input("Excellent above (km/L)", 1.0, 50.0, float(Config.EXCELLENT_THRESHOLD), 0.5)
        good = st.number_input("Good above (km/L)", 1.0, 50.0, float(Config.GOOD_THRESHOLD), 0.5)
        average = st.number_input("Average above (km/L)", 0.5, 50.0, float(Config.AVERAGE_THRESHOLD), 0.5)

    try:
        bounds = SegmentBounds(min_km, max_km)
        thresholds = EfficiencyThresholds(excellent, good, average)
    except ValueError as e:
        st.sidebar.error(f"Invalid parameters, using defaults: {e}")
        bounds, thresholds = SegmentBounds(), EfficiencyThresholds()

    return {
        'session_manager': session_manager,
        'data_manager': DataManager(),
        'chart_builder': ChartBuilder(),
        'map_builder': MapBuilder(),
        'bounds': bounds,
        'thresholds': thresholds,
    }


def init_session_state() -> SessionManager:
    """Initialize Streamlit session state variables."""
    return SessionManager()
