"""
Leave input schemas
"""

from marshmallow import fields, validate

from schoolerp.models.leave import LeaveStatus
from schoolerp.models.people import StaffType
from schoolerp.schemas.base import BaseSchema


class LeavePolicySchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)
    max_days_per_year = fields.Int(required=True, validate=validate.Range(min=1, max=366))
    is_paid = fields.Bool(load_default=True)
    applicable_roles = fields.List(fields.Str(validate=validate.OneOf(StaffType.ALL)),
                                   required=True, validate=validate.Length(min=1))


class LeavePolicyUpdateSchema(LeavePolicySchema):
    adjust_existing_balances = fields.Bool(load_default=False)


class LeaveApplicationSchema(BaseSchema):
    staff_id = fields.Int(allow_none=True)
    policy_id = fields.Int(required=True)
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    reason = fields.Str(required=True, validate=validate.Length(
        min=10, error="Reason must be at least 10 characters"))


class LeaveDecisionSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf((LeaveStatus.APPROVED, LeaveStatus.REJECTED)))
    comments = fields.Str(allow_none=True)


class BulkLeaveDecisionSchema(LeaveDecisionSchema):
    application_ids = fields.List(fields.Int(), required=True, validate=validate.Length(min=1))


class BalanceInitSchema(BaseSchema):
    policy_id = fields.Int(allow_none=True)
    staff_id = fields.Int(allow_none=True)
    year = fields.Int(allow_none=True, validate=validate.Range(min=2000, max=2100))
