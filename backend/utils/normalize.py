"""
Input Normalization Utilities
=============================

Single source of truth for input normalization.
All parsing of external inputs (query strings, CLI options) happens here.

Usage:
    from utils.normalize import to_int, to_date, ValidationError

    @stats_bp.route("/stats/<metric>")
    def get_stat(metric):
        try:
            number = to_int(request.args.get("number"), field="number")
        except ValidationError as e:
            return validation_error_response(e)
"""

from datetime import date, datetime, time
from typing import Optional, Union


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def to_int(
    value: Optional[str],
    *,
    default: Optional[int] = None,
    field: str = None
) -> Optional[int]:
    """
    Convert string to int, with explicit None handling.

    Args:
        value: Input string (typically from request.args.get())
        default: Value to return if input is None or empty
        field: Field name for error messages

    Returns:
        Parsed integer or default

    Raises:
        ValidationError: If value cannot be converted to int
    """
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected int, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_date(
    value: Optional[Union[str, date]],
    *,
    default: Optional[date] = None,
    field: str = None
) -> Optional[date]:
    """
    Convert string to date object.

    Accepts formats:
        - YYYY-MM-DD (full date)
        - YYYY-MM (first of month)
        - Already a date object (passthrough)
        - Already a datetime object (extracts date)

    Raises:
        ValidationError: If value cannot be parsed as date
    """
    if value is None or value == "":
        return default
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    try:
        if len(value) == 7:  # YYYY-MM
            return datetime.strptime(value, "%Y-%m").date()
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected date (YYYY-MM-DD), got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_datetime(
    value: Optional[str],
    *,
    default: Optional[datetime] = None,
    field: str = None
) -> Optional[datetime]:
    """
    Convert ISO string to datetime object.

    Accepts formats:
        - ISO 8601 format (e.g., 2024-01-15T10:30:00Z)
        - SQL format (e.g., 2024-01-15 10:30:00)
        - Already a datetime object (passthrough)

    Raises:
        ValidationError: If value cannot be parsed as datetime
    """
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(
            f"Expected ISO datetime, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


def to_str(
    value: Optional[str],
    *,
    default: Optional[str] = None,
    strip: bool = True,
    field: str = None
) -> Optional[str]:
    """
    Normalize string input, optionally stripping whitespace.

    Whitespace-only input is treated as empty.
    """
    if value is None or value == "":
        return default
    result = str(value)
    if strip:
        result = result.strip()
    if result == "":
        return default
    return result


def validation_error_response(error: ValidationError) -> tuple:
    """
    Convert ValidationError to a structured 400 response tuple.

    Returns:
        Tuple of (dict, 400) suitable for Flask response
    """
    response = {
        "error": str(error),
        "type": "validation_error"
    }
    if error.field:
        response["field"] = error.field
    if error.received_value is not None:
        response["received_value"] = str(error.received_value)
    return response, 400


# ============================================================================
# SERVICE LAYER COERCION (for internal use)
# ============================================================================

def coerce_to_datetime(value, *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Coerce a report boundary to a datetime. For use in SERVICE LAYER only.

    Plain dates (and date-only strings) expand to the beginning of the day,
    or to the last microsecond of the day when end_of_day is set.

    Accepts:
        - None or '' (returns None)
        - datetime object (passthrough)
        - date object
        - string 'YYYY-MM-DD' or ISO/SQL datetime string

    Raises:
        ValueError: If value cannot be coerced
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        value = value.strip()
        if len(value) == 10:
            value = to_date(value)
        else:
            return to_datetime(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min)
    raise ValueError(f"Cannot coerce {type(value).__name__} to datetime: {value!r}")
