"""
Configuration constants and settings for the Fleet Fuel Dashboard.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    """Application configuration constants."""
    # PocketBase backend
    POCKETBASE_URL = os.getenv('POCKETBASE_URL', 'http://127.0.0.1:8090')
    POCKETBASE_IDENTITY = os.getenv('POCKETBASE_IDENTITY', '')
    POCKETBASE_PASSWORD = os.getenv('POCKETBASE_PASSWORD', '')
    POCKETBASE_AUTH_COLLECTION = os.getenv('POCKETBASE_AUTH_COLLECTION', 'users')

    # Collections
    REFUEL_COLLECTION = 'truck_fuel'
    TRUCK_COLLECTION = 'trucks'

    # API and caching parameters
    API_TIMEOUT = 30
    API_CONNECT_TIMEOUT = 10
    API_READ_TIMEOUT = 60
    API_RETRY_ATTEMPTS = 3
    RATE_LIMIT_DELAY = 0.1
    PAGE_SIZE = 500
    CACHE_TTL_SECONDS = 30

    # --- FUEL EFFICIENCY ---
    # Odometer delta between two refuels must fall strictly inside these bounds (km).
    # Anything outside is treated as a reset, rollover or typo.
    MIN_SEGMENT_KM = 1
    MAX_SEGMENT_KM = 2000

    # Efficiency tiers (km/L). Comparison is strict: a value equal to a
    # threshold falls into the tier below it.
    EXCELLENT_THRESHOLD = 15
    GOOD_THRESHOLD = 10
    AVERAGE_THRESHOLD = 5

    EFFICIENCY_COLORS = {
        'Excellent': 'rgba(34, 197, 94, 0.8)',
        'Good': 'rgba(59, 130, 246, 0.8)',
        'Average': 'rgba(245, 158, 11, 0.8)',
        'Poor': 'rgba(239, 68, 68, 0.8)'
    }

    # Refresh cadence for the live panels
    POLL_INTERVAL_SECONDS = 60
    GPS_POLL_INTERVAL_SECONDS = 30

    # Expense analytics
    TOP_VEHICLES = 10
    EXPENSE_PERIOD_OPTIONS = [3, 6, 12, 24]
    DEFAULT_EXPENSE_PERIOD = 6
    TREND_WINDOW_DAYS = 7
    CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '₱')

    # Map
    DEFAULT_CENTER_LAT = 14.5995  # Manila
    DEFAULT_CENTER_LNG = 120.9842
    DEFAULT_ZOOM = 11

    # Columns expected in an uploaded truck_fuel export
    REFUEL_REQUIRED_COLUMNS = [
        'truck_id',
        'created',
        'odometer_reading',
        'fuel_amount'
    ]
    REFUEL_OPTIONAL_COLUMNS = [
        'id',
        'fuel_price',
        'plate_number'
    ]
