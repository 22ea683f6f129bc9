"""
Utilities package initialization
"""

from schoolerp.utils.exceptions import (
    SchoolERPException, ValidationError, AuthenticationError, AuthorizationError,
    NotFoundError, ConflictError, InvalidTransitionError, InsufficientBalanceError,
    DatabaseError, MessagingError
)
from schoolerp.utils.validators import (
    validate_email, validate_password,
    validate_phone_number, validate_branch_code, validate_date_range
)
from schoolerp.utils.helpers import (
    setup_logging, log_error, log_info, log_warning, create_response,
    get_pagination, paginate_query
)

__all__ = [
    'SchoolERPException', 'ValidationError', 'AuthenticationError', 'AuthorizationError',
    'NotFoundError', 'ConflictError', 'InvalidTransitionError', 'InsufficientBalanceError',
    'DatabaseError', 'MessagingError',
    'validate_email', 'validate_password',
    'validate_phone_number', 'validate_branch_code', 'validate_date_range',
    'setup_logging', 'log_error', 'log_info', 'log_warning', 'create_response',
    'get_pagination', 'paginate_query'
]
