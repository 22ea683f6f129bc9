"""
Custom exceptions for the SchoolERP application
"""


class SchoolERPException(Exception):
    """Base exception for SchoolERP application"""
    status_code = 500

    def __init__(self, message: str = "", errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(SchoolERPException):
    """Validation error"""
    status_code = 400


class AuthenticationError(SchoolERPException):
    """Authentication error"""
    status_code = 401


class AuthorizationError(SchoolERPException):
    """Authorization error"""
    status_code = 403


class NotFoundError(SchoolERPException):
    """Requested record does not exist"""
    status_code = 404


class ConflictError(SchoolERPException):
    """Record clashes with an existing one"""
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Workflow status change not allowed"""
    pass


class InsufficientBalanceError(ValidationError):
    """Leave balance too low for the request"""
    pass


class DatabaseError(SchoolERPException):
    """Database unavailable or statement failed"""
    status_code = 500


class MessagingError(SchoolERPException):
    """Messaging provider refused or could not be reached"""
    status_code = 502
