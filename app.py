import streamlit as st
import logging
from ui_components import init_session_state, setup_sidebar
from ui.tabs import tab_efficiency, tab_expenses, tab_fleet_map, tab_data_upload, tab_export

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    st.set_page_config(layout="wide", page_title="Fleet Fuel Dashboard", page_icon="🚚")
    session_manager = init_session_state()
    services = setup_sidebar(session_manager)
    st.title("🚚 Fleet Fuel Dashboard")
    tab1, tab2, tab3, tab4, tab5 = st.tabs(
        ["1. Fuel Efficiency", "2. Fuel Expenses", "3. Fleet Map", "4. Data Upload", "5. Export"]
    )
    with tab1: tab_efficiency(services)
    with tab2: tab_expenses(services)
    with tab3: tab_fleet_map(services)
    with tab4: tab_data_upload(services)
    with tab5: tab_export(services)

if __name__ == "__main__":
    main()
