"""
Fuel expenses tab for the Fleet Fuel Dashboard.
Monthly spend, consumption per truck and cost trends.
"""
import streamlit as st
from typing import Dict, Any
from config import Config
from exceptions import FleetDashboardError
from calculations.fuel_efficiency import aggregate_fuel_efficiency, vehicle_label
from calculations.fuel_expenses import (
    build_refuel_frame, fleet_summary, fuel_consumption_by_vehicle, fuel_cost_trend, monthly_fuel_expenses,
)
from ui_components import load_fleet_data, show_fetch_error
import shared.utils as utils


def _render_summary(summary: Dict[str, Any]) -> None:
    st.subheader("Current Month Progress")
    month = summary['current_month']
    projections = summary['projections']

    c1, c2, c3 = st.columns(3)
    c1.metric("Monthly Spend", utils.format_currency(month['cost']),
              f"{utils.format_change(summary['comparisons']['cost_change'])} vs last month", delta_color="inverse")
    c1.progress(min(projections['month_progress'], 100.0) / 100,
                text=f"{projections['month_progress']:.0f}% of month elapsed")
    c2.metric("Fuel Volume", f"{month['volume']:.0f} L",
              f"{utils.format_change(summary['comparisons']['volume_change'])} vs last month", delta_color="inverse")
    c2.caption(f"{month['transactions']} transactions")
    c3.metric("Projected Total", utils.format_currency(projections['projected_monthly_cost']),
              f"{utils.format_change(projections['weekly_trend'])} weekly trend", delta_color="inverse")
    c3.caption(f"{Config.CURRENCY_SYMBOL}{month['avg_price_per_liter']:.2f}/L avg price")

    fleet = summary['fleet']
    f1, f2, f3 = st.columns(3)
    f1.metric("Active Trucks", f"{fleet['active_trucks']} / {fleet['total_trucks']}")
    if fleet['most_efficient']:
        f2.metric("Most Efficient", fleet['most_efficient'][0], utils.format_efficiency(fleet['most_efficient'][1]))
    if fleet['least_efficient']:
        f3.metric("Least Efficient", fleet['least_efficient'][0],
                  utils.format_efficiency(fleet['least_efficient'][1]), delta_color="off")


def tab_expenses(services: Dict[str, Any]) -> None:
    """Handle the fuel expenses tab functionality."""
    st.header("Fuel Expenses")

    events, vehicles = load_fleet_data(services)
    show_fetch_error()
    if not events:
        st.warning("No fuel records available.")
        return

    try:
        frame = build_refuel_frame(events, vehicles)
        efficiency = aggregate_fuel_efficiency(events, vehicles, services['bounds'], services['thresholds'])
        _render_summary(fleet_summary(frame, vehicles, efficiency))

        st.subheader("Monthly Fuel Expenses")
        months = st.selectbox(
            "Period",
            Config.EXPENSE_PERIOD_OPTIONS,
            index=Config.EXPENSE_PERIOD_OPTIONS.index(Config.DEFAULT_EXPENSE_PERIOD),
            format_func=lambda m: f"Last {m} Months",
            key='expense_period'
        )
        monthly, stats = monthly_fuel_expenses(frame, months)
        s1, s2, s3, s4 = st.columns(4)
        s1.metric("Total Expense", utils.format_currency(stats['total_expense']))
        s2.metric("Total Volume", f"{stats['total_volume']:.0f} L")
        s3.metric("Monthly Average", utils.format_currency(stats['avg_monthly_expense']))
        s4.metric("Avg Price/Liter", f"{Config.CURRENCY_SYMBOL}{stats['avg_price_per_liter']:.2f}")
        st.plotly_chart(services['chart_builder'].monthly_expenses(monthly), use_container_width=True)

        st.subheader("Fuel Consumption by Truck")
        consumption = fuel_consumption_by_vehicle(frame, vehicles)
        st.plotly_chart(services['chart_builder'].consumption_by_vehicle(consumption), use_container_width=True)

        st.subheader("Fuel Cost Trend")
        options = ['all'] + [v.id for v in vehicles]
        labels = {v.id: vehicle_label(v) for v in vehicles}
        selected = st.selectbox("Truck", options, format_func=lambda v: "All Trucks" if v == 'all' else labels[v],
                                key='trend_vehicle')
        vehicle_id = None if selected == 'all' else selected
        trend = fuel_cost_trend(frame, vehicle_id)
        if trend.empty:
            st.info("No refuels recorded for this truck.")
        else:
            st.plotly_chart(services['chart_builder'].cost_trend(trend, single_vehicle=vehicle_id is not None),
                            use_container_width=True)

    except FleetDashboardError as e:
        st.error(f"Expense analytics error: {e}")
