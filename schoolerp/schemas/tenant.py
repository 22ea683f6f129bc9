"""
Branch and academic session input schemas
"""

from marshmallow import ValidationError, fields, validate, validates_schema

from schoolerp.schemas.base import BaseSchema, valid_branch_code, valid_phone


class BranchSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    code = fields.Str(required=True, validate=valid_branch_code)
    address = fields.Str(allow_none=True)
    phone = fields.Str(allow_none=True, validate=valid_phone)
    is_active = fields.Bool()


class AcademicSessionSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=30))
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    is_current = fields.Bool(load_default=False)

    @validates_schema
    def check_dates(self, data, **kwargs):
        start, end = data.get('start_date'), data.get('end_date')
        if start and end and start > end:
            raise ValidationError("Start date must be before or equal to end date")
