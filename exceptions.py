"""
Custom exceptions for the Fleet Fuel Dashboard.
"""

class FleetDashboardError(Exception):
    """Base exception for the application."""
    pass

class ConfigurationError(FleetDashboardError):
    """Raised when configuration is invalid or missing."""
    pass

class AuthenticationError(FleetDashboardError):
    """Raised when the backend rejects the configured credentials."""
    pass

class DataValidationError(FleetDashboardError):
    """Raised when input data validation fails."""
    pass

class DataFetchError(FleetDashboardError):
    """Raised when a collection cannot be fetched from the backend."""
    def __init__(self, collection: str, message: str = "", status_code: int = None):
        self.collection = collection
        self.message = message
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Failed to fetch '{collection}'{detail}: {message}")
