"""
Marshmallow setup and the schema loading helper
"""

from flask_marshmallow import Marshmallow
from marshmallow import EXCLUDE
from marshmallow import ValidationError as SchemaValidationError

from schoolerp.utils.exceptions import ValidationError
from schoolerp.utils.validators import validate_branch_code, validate_password, validate_phone_number

ma = Marshmallow()


def check(predicate, message):
    """Field validator from a boolean check"""
    def _validate(value):
        if not predicate(value):
            raise SchemaValidationError(message)
    return _validate


valid_phone = check(validate_phone_number, "Invalid phone number")
valid_password = check(validate_password, "Password must be at least 8 characters")
valid_branch_code = check(validate_branch_code, "Branch code must be 1-10 upper-case letters or digits")


class BaseSchema(ma.Schema):
    """Input schema that drops unknown keys"""

    class Meta:
        unknown = EXCLUDE


def load(schema, data, partial=False):
    """
    Validate request data against a schema

    Args:
        schema: Schema instance
        data: Parsed JSON body
        partial: Allow missing required fields (updates)

    Returns:
        Deserialized dictionary

    Raises:
        ValidationError: With the field messages attached
    """
    if data is None:
        raise ValidationError("No data provided")
    try:
        return schema.load(data, partial=partial)
    except SchemaValidationError as e:
        raise ValidationError("Invalid input", errors=e.messages)
