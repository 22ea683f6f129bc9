"""
Validation utilities
"""

import re
from datetime import date
from typing import Optional

from schoolerp.utils.exceptions import ValidationError


def validate_email(email: str) -> bool:
    """
    Validate email format

    Args:
        email: Email to validate

    Returns:
        True if valid email
    """
    if not email or not isinstance(email, str):
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email.strip()))


def validate_password(password: str) -> bool:
    """
    Validate password strength

    Args:
        password: Password to validate

    Returns:
        True if valid password
    """
    if not password or not isinstance(password, str):
        return False

    # At least 8 characters
    return len(password) >= 8


def validate_phone_number(phone: str) -> bool:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone number
    """
    if not phone or not isinstance(phone, str):
        return False

    # Remove all non-digit characters
    digits_only = re.sub(r'\D', '', phone)

    # Check if it's a valid length (7-15 digits)
    return 7 <= len(digits_only) <= 15


def validate_branch_code(code: str) -> bool:
    """Branch codes are 1-10 upper-case letters or digits"""
    if not code or not isinstance(code, str):
        return False
    return bool(re.match(r'^[A-Z0-9]{1,10}$', code))


def validate_date_range(start: Optional[date], end: Optional[date],
                        start_name: str = "Start date", end_name: str = "end date") -> None:
    """
    Validate that start is not after end

    Raises:
        ValidationError: If start > end
    """
    if start and end and start > end:
        raise ValidationError(f"{start_name} must be before or equal to {end_name}")
