"""
Examination input schemas
"""

from marshmallow import ValidationError, fields, validate, validates_schema

from schoolerp.schemas.base import BaseSchema

_positive = validate.Range(min=0, min_inclusive=False)


class GradeRangeSchema(BaseSchema):
    grade = fields.Str(required=True, validate=validate.Length(min=1, max=10))
    min_percentage = fields.Decimal(required=True, validate=validate.Range(min=0, max=100))
    max_percentage = fields.Decimal(required=True, validate=validate.Range(min=0, max=100))
    grade_point = fields.Decimal(allow_none=True)
    description = fields.Str(allow_none=True)

    @validates_schema
    def check_bounds(self, data, **kwargs):
        low, high = data.get('min_percentage'), data.get('max_percentage')
        if low is not None and high is not None and low >= high:
            raise ValidationError("Minimum percentage must be less than maximum percentage")


class GradeScaleSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)
    is_default = fields.Bool(load_default=False)
    ranges = fields.List(fields.Nested(GradeRangeSchema), load_default=list)


class ComponentSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    raw_max_score = fields.Decimal(required=True, validate=_positive)
    reduced_score = fields.Decimal(required=True, validate=_positive)
    weightage = fields.Decimal(load_default=1, validate=_positive)


class MarksSchemeSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    class_name = fields.Str(required=True)
    subject = fields.Str(required=True)
    term = fields.Str(allow_none=True)
    total_marks = fields.Decimal(required=True, validate=_positive)
    grade_scale_id = fields.Int(allow_none=True)
    components = fields.List(fields.Nested(ComponentSchema), required=True,
                             validate=validate.Length(min=1))


class ScoreEntrySchema(BaseSchema):
    student_id = fields.Int(required=True)
    component_id = fields.Int(required=True)
    raw_score = fields.Decimal(required=True, validate=validate.Range(min=0))


class BulkScoreSchema(BaseSchema):
    scores = fields.List(fields.Nested(ScoreEntrySchema), required=True,
                         validate=validate.Length(min=1))
