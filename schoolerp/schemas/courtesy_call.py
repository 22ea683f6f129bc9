"""
Courtesy call input schemas
"""

from marshmallow import fields, validate

from schoolerp.schemas.base import BaseSchema


class CourtesyCallSchema(BaseSchema):
    student_id = fields.Int(required=True)
    purpose = fields.Str(allow_none=True, validate=validate.Length(max=255))
    feedback = fields.Str(required=True, validate=validate.Length(min=1))
    follow_up = fields.Str(allow_none=True)
    is_private = fields.Bool(load_default=False)
    call_date = fields.DateTime(allow_none=True)


class CourtesyCallUpdateSchema(BaseSchema):
    purpose = fields.Str(allow_none=True, validate=validate.Length(max=255))
    feedback = fields.Str(validate=validate.Length(min=1))
    follow_up = fields.Str(allow_none=True)
    is_private = fields.Bool()
    call_date = fields.DateTime()
