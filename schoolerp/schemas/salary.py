"""
Payroll input schemas
"""

from marshmallow import ValidationError, fields, validate, validates_schema

from schoolerp.models.salary import SalaryPaymentStatus
from schoolerp.schemas.base import BaseSchema

_percent = validate.Range(min=0, max=100)
_non_negative = validate.Range(min=0)


class SalaryStructureSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)
    basic_salary = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    da_percentage = fields.Decimal(load_default=0, validate=_percent)
    pf_percentage = fields.Decimal(load_default=0, validate=_percent)
    esi_percentage = fields.Decimal(load_default=0, validate=_percent)
    is_active = fields.Bool(load_default=True)


class StaffSalarySchema(BaseSchema):
    staff_id = fields.Int(required=True)
    structure_id = fields.Int(required=True)
    custom_basic_salary = fields.Decimal(allow_none=True, validate=validate.Range(min=0, min_inclusive=False))
    custom_da_percentage = fields.Decimal(allow_none=True, validate=_percent)
    custom_pf_percentage = fields.Decimal(allow_none=True, validate=_percent)
    custom_esi_percentage = fields.Decimal(allow_none=True, validate=_percent)
    additional_allowances = fields.Decimal(load_default=0, validate=_non_negative)
    start_date = fields.Date(required=True)
    remarks = fields.Str(allow_none=True)


class IncrementSchema(BaseSchema):
    amount = fields.Decimal(allow_none=True, validate=validate.Range(min=0, min_inclusive=False))
    percentage = fields.Decimal(allow_none=True, validate=validate.Range(min=0, min_inclusive=False))
    effective_date = fields.Date(required=True)
    remarks = fields.Str(allow_none=True)

    @validates_schema
    def check_one_given(self, data, **kwargs):
        if data.get('amount') is None and data.get('percentage') is None:
            raise ValidationError("Either amount or percentage is required")


class SalaryPaymentSchema(BaseSchema):
    staff_id = fields.Int(required=True)
    month = fields.Int(required=True, validate=validate.Range(min=1, max=12))
    year = fields.Int(required=True, validate=validate.Range(min=2000, max=2100))
    other_deductions = fields.Decimal(load_default=0, validate=_non_negative)
    other_additions = fields.Decimal(load_default=0, validate=_non_negative)
    remarks = fields.Str(allow_none=True)


class SalaryPaymentStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(SalaryPaymentStatus.ALL))
    remarks = fields.Str(allow_none=True)
