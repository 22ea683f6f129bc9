"""
Helper utilities
"""

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, Tuple

from flask import current_app, request

from schoolerp.utils.exceptions import ValidationError


def setup_logging() -> None:
    """Setup application logging"""
    if not current_app.debug:
        # Production logging
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )
    else:
        # Development logging
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )


def log_error(message: str, exception: Optional[Exception] = None) -> None:
    """
    Log error message

    Args:
        message: Error message
        exception: Exception object
    """
    if exception:
        current_app.logger.error(f"{message}: {str(exception)}")
    else:
        current_app.logger.error(message)


def log_warning(message: str) -> None:
    """Log warning message"""
    current_app.logger.warning(message)


def log_info(message: str) -> None:
    """
    Log info message

    Args:
        message: Info message
    """
    current_app.logger.info(message)


def create_response(success: bool, message: str, data: Any = None,
                    errors: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create standardized API response

    Args:
        success: Whether operation was successful
        message: Response message
        data: Optional data to include
        errors: Optional field errors

    Returns:
        Standardized response dictionary
    """
    response = {
        'ok': success,
        'message': message
    }

    if data is not None:
        response['data'] = data

    if errors:
        response['errors'] = errors

    return response


def iso(value) -> Optional[str]:
    """Serialize a date or datetime, passing None through"""
    if value is None:
        return None
    return value.isoformat()


def money(value) -> Decimal:
    """Round to two decimal places"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days from start to end, both included"""
    return (end - start).days + 1


def overlap_days(start: date, end: date, window_start: date, window_end: date) -> int:
    """Days of [start, end] falling inside [window_start, window_end]"""
    lo = max(start, window_start)
    hi = min(end, window_end)
    if lo > hi:
        return 0
    return inclusive_days(lo, hi)


def utcnow() -> datetime:
    return datetime.utcnow()


def get_pagination() -> Tuple[int, int]:
    """Read page/limit query parameters, clamped to the configured maximum"""
    default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    try:
        page = max(int(request.args.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.args.get('limit', default_size))
    except (TypeError, ValueError):
        limit = default_size
    limit = min(max(limit, 1), max_size)
    return page, limit


def paginate_query(query, page: int, limit: int) -> Dict[str, Any]:
    """Run a paginated query and return items plus paging metadata"""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        'items': [item.to_dict() for item in items],
        'total': total,
        'page': page,
        'limit': limit,
        'pages': (total + limit - 1) // limit if limit else 0,
    }


def parse_date(value, field_name: str = "date") -> Optional[date]:
    """Parse a YYYY-MM-DD query parameter"""
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}, expected YYYY-MM-DD")


def parse_int(value, field_name: str = "value") -> Optional[int]:
    """Parse an integer query parameter"""
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}, expected an integer")


def parse_bool(value) -> bool:
    return str(value).lower() in ['true', '1', 'on', 'yes']
