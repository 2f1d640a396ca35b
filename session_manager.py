"""
Session state management for the Fleet Fuel Dashboard.
"""

import streamlit as st
import logging
from datetime import datetime, timezone
from typing import Any, List, Tuple
from exceptions import DataValidationError
from calculations.types import RefuelEvent, Vehicle

logger = logging.getLogger(__name__)

LIVE_SOURCE = 'live'
UPLOAD_SOURCE = 'upload'

class SessionManager:
    """Manages Streamlit session state with validation and organization."""

    def __init__(self):
        self._initialize_session_state()

    def _initialize_session_state(self):
        """Initialize all session state variables with default values."""
        defaults = {
            'client': None,
            'data_source': LIVE_SOURCE,
            'uploaded_events': None,
            'uploaded_vehicles': None,
            'file_id': None,
            'last_refreshed': None,
            'fetch_error': None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value
                logger.debug(f"Initialized session state: {key}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get session state value with validation."""
        if key not in st.session_state:
            logger.warning(f"Session state key '{key}' not found, returning default")
            return default
        return st.session_state[key]

    def set(self, key: str, value: Any) -> None:
        """Set session state value with logging."""
        try:
            st.session_state[key] = value
            logger.debug(f"Set session state: {key}")
        except Exception as e:
            logger.error(f"Failed to set session state '{key}': {e}")
            raise DataValidationError(f"Session state error: {e}")

    def use_uploaded_data(self, file_id: str, events: List[RefuelEvent], vehicles: List[Vehicle]) -> None:
        """Switch the dashboard to an uploaded refuel export."""
        self.set('uploaded_events', events)
        self.set('uploaded_vehicles', vehicles)
        self.set('file_id', file_id)
        self.set('data_source', UPLOAD_SOURCE)
        logger.info(f"Using uploaded data: {len(events)} refuel events, {len(vehicles)} trucks")

    def clear_data(self) -> None:
        """Drop uploaded data and go back to the live backend."""
        for key in ['uploaded_events', 'uploaded_vehicles', 'file_id', 'fetch_error']:
            if key in st.session_state:
                st.session_state[key] = None
        st.session_state['data_source'] = LIVE_SOURCE
        logger.info("Cleared uploaded data, switched to live source")

    def uploaded_data(self) -> Tuple[List[RefuelEvent], List[Vehicle]]:
        return self.get('uploaded_events') or [], self.get('uploaded_vehicles') or []

    def is_upload_source(self) -> bool:
        return self.get('data_source') == UPLOAD_SOURCE and self.get('uploaded_events') is not None

    def mark_refreshed(self) -> None:
        self.set('last_refreshed', datetime.now(timezone.utc))
