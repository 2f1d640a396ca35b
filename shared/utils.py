"""
Utility functions for the Fleet Fuel Dashboard.
Shared by the calculation modules, the data layer and the UI tabs.
"""

import pandas as pd
from typing import Union, Optional, Callable, Any, Tuple, Type
import io
import math
import re
import time
import logging
from functools import wraps
from config import Config
from exceptions import DataValidationError

logger = logging.getLogger(__name__)

# '1,250' or '12,345.6'; a decimal comma such as '12,5' does not match
THOUSANDS_PATTERN = re.compile(r'^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$')

def retry_with_backoff(max_attempts: int = Config.API_RETRY_ATTEMPTS,
                      delay: float = Config.RATE_LIMIT_DELAY,
                      retry_on: Tuple[Type[BaseException], ...] = (Exception,)):
    """Decorator for retrying API calls with exponential backoff."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if attempt == max_attempts - 1:
                        logger.error(f"API call failed after {max_attempts} attempts: {e}")
                        raise e

                    wait_time = delay * (2 ** attempt)
                    logger.warning(f"Attempt {attempt + 1} failed, retrying in {wait_time}s: {e}")
                    time.sleep(wait_time)

            raise last_exception
        return wrapper
    return decorator

def to_positive_number(value: Any) -> Optional[float]:
    """
    Coerce a raw numeric field to a strictly positive finite float.

    Returns None for anything that cannot be used as a measurement: None,
    booleans, non-numeric strings, NaN/inf, zero and negatives. PocketBase
    stores an unset number field as 0, so zero means "not entered".
    Strings may use commas only as thousands separators.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if ',' in value:
            if not THOUSANDS_PATTERN.match(value):
                logger.debug(f"Rejecting ambiguous numeric string '{value}'")
                return None
            value = value.replace(',', '')
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number

def to_amount(value: Any) -> float:
    """Coerce a money/volume field for totals; unusable values count as 0."""
    number = to_positive_number(value)
    return number if number is not None else 0.0

def validate_coordinates(lat: Any, lng: Any) -> bool:
    """Validate that a coordinate pair is numeric and on the globe."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    try:
        lat_float, lng_float = float(lat), float(lng)
    except (ValueError, TypeError):
        return False
    if not (math.isfinite(lat_float) and math.isfinite(lng_float)):
        return False
    return -90.0 <= lat_float <= 90.0 and -180.0 <= lng_float <= 180.0


def read_tabular_file(file_buffer: Union[io.BytesIO, io.StringIO]) -> pd.DataFrame:
    """
    Read an uploaded Excel/CSV export, trying the common CSV encodings.
    """
    logger.info("Reading uploaded file")

    try:
        if hasattr(file_buffer, 'name') and file_buffer.name.endswith(('.xlsx', '.xls')):
            logger.debug("Attempting to read as Excel file")
            df = pd.read_excel(file_buffer, engine='openpyxl')
            logger.info(f"Successfully read Excel file with {len(df)} rows")
        else:
            encodings = ['utf-8', 'utf-8-sig', 'cp1252', 'latin-1']

            for encoding in encodings:
                try:
                    file_buffer.seek(0)
                    logger.debug(f"Trying CSV encoding: {encoding}")
                    df = pd.read_csv(file_buffer, encoding=encoding)
                    logger.info(f"Successfully read CSV file with {encoding} encoding, {len(df)} rows")
                    break
                except UnicodeDecodeError:
                    logger.debug(f"Failed to read with {encoding} encoding")
                    continue
            else:
                error_msg = "Could not read file with any supported encoding"
                logger.error(error_msg)
                raise DataValidationError(error_msg)

        if df.empty:
            error_msg = "File is empty or could not be parsed"
            logger.error(error_msg)
            raise DataValidationError(error_msg)

        logger.info(f"File read successfully. Found columns: {list(df.columns)}")
        return df

    except DataValidationError:
        raise
    except Exception as e:
        error_msg = f"Error reading file: {str(e)}"
        logger.error(error_msg)
        raise DataValidationError(error_msg)


def format_currency(amount: Optional[float], symbol: str = Config.CURRENCY_SYMBOL) -> str:
    """Format a money amount with no decimals, e.g. '₱12,340'."""
    if amount is None:
        return "N/A"
    return f"{symbol}{amount:,.0f}"

def format_efficiency(value: Optional[float]) -> str:
    """Format a km/L figure for callouts."""
    if value is None:
        return "N/A"
    return f"{value:.2f} km/L"

def format_change(value: float) -> str:
    """Format a percentage change with an explicit sign."""
    sign = '+' if value > 0 else ''
    return f"{sign}{value:.1f}%"
