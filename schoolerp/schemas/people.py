"""
Student and staff input schemas
"""

from marshmallow import fields, validate

from schoolerp.models.people import StaffType
from schoolerp.schemas.base import BaseSchema, valid_phone


class StudentSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    admission_number = fields.Str(allow_none=True, validate=validate.Length(max=50))
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    date_of_birth = fields.Date(allow_none=True)
    gender = fields.Str(allow_none=True)
    class_name = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    section = fields.Str(allow_none=True)
    roll_number = fields.Str(allow_none=True)
    guardian_name = fields.Str(allow_none=True)
    guardian_phone = fields.Str(allow_none=True, validate=valid_phone)
    guardian_email = fields.Email(allow_none=True)
    address = fields.Str(allow_none=True)
    is_active = fields.Bool()
    date_of_admission = fields.Date(allow_none=True)


class StaffSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    user_id = fields.Int(allow_none=True)
    staff_type = fields.Str(required=True, validate=validate.OneOf(StaffType.ALL))
    employee_code = fields.Str(required=True, validate=validate.Length(min=1, max=30))
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(allow_none=True)
    phone = fields.Str(allow_none=True, validate=valid_phone)
    designation = fields.Str(allow_none=True)
    department = fields.Str(allow_none=True)
    is_active = fields.Bool()
    join_date = fields.Date(allow_none=True)
