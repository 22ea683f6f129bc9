"""
Attendance input schemas
"""

from marshmallow import fields, validate

from schoolerp.models.attendance import AttendanceStatus
from schoolerp.schemas.base import BaseSchema


class AttendanceRecordSchema(BaseSchema):
    student_id = fields.Int(required=True)
    status = fields.Str(required=True, validate=validate.OneOf(AttendanceStatus.ALL))
    reason = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)


class MarkAttendanceSchema(AttendanceRecordSchema):
    date = fields.Date(required=True)


class BulkAttendanceSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    class_name = fields.Str(required=True)
    section = fields.Str(allow_none=True)
    date = fields.Date(required=True)
    records = fields.List(fields.Nested(AttendanceRecordSchema), required=True,
                          validate=validate.Length(min=1))


class AttendanceLocationSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))
    radius = fields.Float(load_default=100.0, validate=validate.Range(min=0, min_inclusive=False))
    is_active = fields.Bool()


class CheckInSchema(BaseSchema):
    location_id = fields.Int(required=True)
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))
