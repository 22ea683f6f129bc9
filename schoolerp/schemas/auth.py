"""
Authentication, user and role input schemas
"""

from marshmallow import fields, validate

from schoolerp.schemas.base import BaseSchema, valid_password
from schoolerp.utils.permissions import ALL_PERMISSIONS


class LoginSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=1))


class UserCreateSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=valid_password)
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    branch_id = fields.Int(allow_none=True)
    is_super_admin = fields.Bool(load_default=False)
    roles = fields.List(fields.Str(), load_default=list)


class RoleSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Regexp(
        r'^[a-z][a-z0-9_]{1,63}$', error="Role name must be lower-case letters, digits or underscores"))
    description = fields.Str(allow_none=True)
    permissions = fields.List(fields.Str(validate=validate.OneOf(ALL_PERMISSIONS)), load_default=list)


class RolePermissionsSchema(BaseSchema):
    permissions = fields.List(fields.Str(validate=validate.OneOf(ALL_PERMISSIONS)), required=True)


class RoleAssignmentSchema(BaseSchema):
    role_id = fields.Int(required=True)
