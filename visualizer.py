"""
Visualization service for the fleet dashboard: Plotly charts and the Folium GPS map.
"""

import folium
import folium.plugins
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from typing import List, Optional
import logging
from config import Config
from calculations.types import EfficiencyResult, EfficiencyThresholds, VehiclePosition

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NO_DATA_COLOR = 'rgba(128, 128, 128, 0.6)'


class ChartBuilder:
    """Service for building the analytics charts with Plotly."""

    def efficiency_pie(self, result: EfficiencyResult,
                       thresholds: Optional[EfficiencyThresholds] = None) -> go.Figure:
        """Share of vehicles per efficiency tier. Empty tiers are left out."""
        if not result.has_data:
            fig = go.Figure(go.Pie(labels=['No Efficiency Data'], values=[1],
                                   marker=dict(colors=[NO_DATA_COLOR]), textinfo='label'))
            fig.update_layout(title='Fleet Fuel Efficiency Distribution', showlegend=False)
            return fig

        labels, values, colors = [], [], []
        for category, records in result.categorized.items():
            if records:
                labels.append(category.label(thresholds))
                values.append(len(records))
                colors.append(Config.EFFICIENCY_COLORS[category.value])

        fig = go.Figure(go.Pie(
            labels=labels,
            values=values,
            marker=dict(colors=colors, line=dict(color='white', width=2)),
            sort=False,
            hovertemplate='%{label}: %{value} trucks (%{percent})<extra></extra>'
        ))
        fig.update_layout(title='Fleet Fuel Efficiency Distribution', legend=dict(orientation='v', x=1.02))
        return fig

    def efficiency_bar(self, table: pd.DataFrame, fleet_average: Optional[float]) -> go.Figure:
        """
        Per-vehicle efficiency, coloured by tier, with the fleet average line.
        Bars are keyed by vehicle id so trucks sharing a plate stay separate.
        """
        fig = px.bar(
            table,
            x='Vehicle ID',
            y='Efficiency (km/L)',
            color='Category',
            hover_data=['Plate'],
            category_orders={'Vehicle ID': list(table['Vehicle ID'])},
            title='Fuel Efficiency by Truck (km/L)',
        )
        fig.update_xaxes(title_text='Truck', tickmode='array',
                         tickvals=list(table['Vehicle ID']), ticktext=list(table['Plate']))
        if fleet_average is not None:
            fig.add_hline(y=fleet_average, line_dash='dash', line_color='red',
                          annotation_text=f"Fleet Avg: {fleet_average:.1f} km/L")
        return fig

    def efficiency_by_type(self, by_type: pd.DataFrame) -> go.Figure:
        fig = px.bar(
            by_type,
            x='Truck Type',
            y='Avg Efficiency (km/L)',
            text='Trucks',
            title='Average Efficiency by Truck Type (km/L)',
        )
        fig.update_traces(texttemplate='%{text} trucks', textposition='outside',
                          marker_color='rgba(59, 130, 246, 0.8)')
        return fig

    def monthly_expenses(self, monthly: pd.DataFrame) -> go.Figure:
        """Monthly spend as bars with volume on a secondary axis."""
        fig = make_subplots(specs=[[{'secondary_y': True}]])
        fig.add_trace(go.Bar(x=monthly['label'], y=monthly['total_cost'],
                             name=f"Monthly Fuel Expense ({Config.CURRENCY_SYMBOL})",
                             marker_color='rgba(59, 130, 246, 0.8)'), secondary_y=False)
        fig.add_trace(go.Scatter(x=monthly['label'], y=monthly['total_liters'], name='Fuel Volume (Liters)',
                                 mode='lines+markers', line=dict(color='rgba(16, 185, 129, 1)', shape='spline')),
                      secondary_y=True)
        fig.update_layout(title=f"Monthly Fuel Expenses - Last {len(monthly)} Months", hovermode='x unified')
        fig.update_xaxes(title_text='Month')
        fig.update_yaxes(title_text=f"Expense ({Config.CURRENCY_SYMBOL})", rangemode='tozero', secondary_y=False)
        fig.update_yaxes(title_text='Volume (Liters)', rangemode='tozero', secondary_y=True)
        return fig

    def consumption_by_vehicle(self, consumption: pd.DataFrame) -> go.Figure:
        """Liters per truck as bars with total cost as a line."""
        fig = make_subplots(specs=[[{'secondary_y': True}]])
        fig.add_trace(go.Bar(x=consumption['plate_label'], y=consumption['total_liters'],
                             name='Fuel Consumption (Liters)', marker_color=px.colors.qualitative.Set2),
                      secondary_y=False)
        fig.add_trace(go.Scatter(x=consumption['plate_label'], y=consumption['total_cost'],
                                 name=f"Total Cost ({Config.CURRENCY_SYMBOL})", mode='lines+markers',
                                 line=dict(shape='spline')), secondary_y=True)
        fig.update_layout(title='Fuel Consumption & Cost by Truck', hovermode='x unified')
        fig.update_xaxes(title_text='Truck Plate Number')
        fig.update_yaxes(title_text='Fuel Consumption (Liters)', rangemode='tozero', secondary_y=False)
        fig.update_yaxes(title_text=f"Total Cost ({Config.CURRENCY_SYMBOL})", rangemode='tozero', secondary_y=True)
        return fig

    def cost_trend(self, trend: pd.DataFrame, single_vehicle: bool = False) -> go.Figure:
        """Cost per refuel over time, one line per truck unless a single truck is shown."""
        fig = px.line(
            trend,
            x='created',
            y='cost',
            color=None if single_vehicle else 'plate_label',
            markers=True,
            line_shape='spline',
            labels={'created': 'Date', 'cost': f"Cost ({Config.CURRENCY_SYMBOL})", 'plate_label': 'Truck'},
            title='Fuel Cost Trend'
        )
        if single_vehicle:
            fig.update_traces(fill='tozeroy')
        return fig


class MapBuilder:
    """Service for creating interactive maps with Folium."""

    STATUS_COLORS = {
        'moving': 'green',
        'idle': 'orange',
        'stopped': 'red',
    }

    def create_fleet_map(self, positions: List[VehiclePosition]) -> folium.Map:
        """
        Map of the latest known position of every truck.
        Centers on the fleet, or on the configured default when no truck reports a fix.
        """
        try:
            if positions:
                center_lat = sum(p.latitude for p in positions) / len(positions)
                center_lng = sum(p.longitude for p in positions) / len(positions)
            else:
                center_lat, center_lng = Config.DEFAULT_CENTER_LAT, Config.DEFAULT_CENTER_LNG

            m = folium.Map(
                location=[center_lat, center_lng],
                zoom_start=Config.DEFAULT_ZOOM if len(positions) != 1 else 14,
                tiles='OpenStreetMap'
            )

            for position in positions:
                self._add_truck_marker(m, position)

            if len(positions) > 1:
                m.fit_bounds([[p.latitude, p.longitude] for p in positions])

            folium.plugins.Fullscreen(
                position='topright',
                title='Expand map',
                title_cancel='Exit full screen',
                force_separate_button=True
            ).add_to(m)

            logger.info(f"Fleet map created with {len(positions)} trucks")
            return m

        except Exception as e:
            logger.error(f"Error creating fleet map: {e}")
            raise

    def _add_truck_marker(self, m, position: VehiclePosition):
        """Helper to add a truck marker with its latest statistics."""
        heading = f" (Heading {position.direction})" if position.direction else ""
        mileage = f"{position.total_mileage:,.0f} km" if position.total_mileage else "N/A"
        updated = position.updated.strftime('%Y-%m-%d %H:%M') if position.updated else "N/A"
        popup_html = f"""
        <div style="font-family: Arial, sans-serif; font-size: 12px;">
            <strong>{position.plate_label}</strong><br>
            Status: {position.status}{heading}<br>
            Speed: {position.speed:.1f} km/h<br>
            Mileage: {mileage}<br>
            Coordinates: {position.latitude:.6f}, {position.longitude:.6f}<br>
            Updated: {updated}
        </div>
        """

        folium.Marker(
            location=[position.latitude, position.longitude],
            popup=folium.Popup(popup_html, max_width=300),
            tooltip=position.plate_label,
            icon=folium.Icon(color=self.STATUS_COLORS.get(str(position.status).lower(), 'blue'),
                             icon='truck', prefix='fa')
        ).add_to(m)
