"""
Admissions input schemas
"""

from marshmallow import fields, validate

from schoolerp.models.admission import (
    AdmissionStatus, ApplicationStatus, StageStatus, RequirementStatus, FollowUpStatus,
    AssessmentType, AssessmentStatus, AssessmentResult, OfferStatus,
    PaymentMethod, PaymentStatus, PaymentType
)
from schoolerp.schemas.base import BaseSchema, valid_phone

INTERACTION_TYPES = ('CALL', 'EMAIL', 'WHATSAPP', 'SMS', 'VISIT', 'MEETING', 'NOTE')


class LeadSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    session_id = fields.Int(allow_none=True)
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    birth_date = fields.Date(allow_none=True)
    gender = fields.Str(allow_none=True)
    applied_class = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    parent_name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    parent_phone = fields.Str(required=True, validate=[validate.Length(max=20), valid_phone])
    parent_email = fields.Email(allow_none=True)
    address = fields.Str(allow_none=True)
    city = fields.Str(allow_none=True)
    state = fields.Str(allow_none=True)
    country = fields.Str(allow_none=True)
    previous_school = fields.Str(allow_none=True)
    source_id = fields.Int(allow_none=True)
    notes = fields.Str(allow_none=True)
    assigned_to_id = fields.Int(allow_none=True)
    contact_method = fields.Str(allow_none=True)
    next_follow_up_date = fields.Date(allow_none=True)


class PublicInquirySchema(LeadSchema):
    branch_id = fields.Int(required=True)


class LeadStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(AdmissionStatus.ALL))
    notes = fields.Str(allow_none=True)


class InteractionSchema(BaseSchema):
    type = fields.Str(required=True, validate=validate.OneOf(INTERACTION_TYPES))
    description = fields.Str(required=True, validate=validate.Length(min=1))
    occurred_at = fields.DateTime(allow_none=True)


class FollowUpSchema(BaseSchema):
    scheduled_date = fields.Date(required=True)
    description = fields.Str(required=True, validate=validate.Length(min=1))
    status = fields.Str(validate=validate.OneOf(FollowUpStatus.ALL))
    outcome = fields.Str(allow_none=True)
    assigned_to_id = fields.Int(allow_none=True)


class LeadSourceSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)
    is_active = fields.Bool()


class StageInputSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)


class RequirementInputSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True)
    is_required = fields.Bool(load_default=True)


class ApplicationSchema(BaseSchema):
    lead_id = fields.Int(required=True)
    assigned_to_id = fields.Int(allow_none=True)
    stages = fields.List(fields.Nested(StageInputSchema), allow_none=True)
    requirements = fields.List(fields.Nested(RequirementInputSchema), allow_none=True)


class ApplicationStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(ApplicationStatus.ALL))
    decision_notes = fields.Str(allow_none=True)


class StageUpdateSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(StageStatus.ALL))
    completed_date = fields.DateTime(allow_none=True)
    notes = fields.Str(allow_none=True)


class RequirementUpdateSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(RequirementStatus.ALL))
    completed_date = fields.DateTime(allow_none=True)
    document_url = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)


class AdmissionAssessmentSchema(BaseSchema):
    lead_id = fields.Int(required=True)
    type = fields.Str(required=True, validate=validate.OneOf(AssessmentType.ALL))
    subject = fields.Str(allow_none=True)
    scheduled_date = fields.DateTime(required=True)
    assessor_id = fields.Int(allow_none=True)
    location = fields.Str(allow_none=True)
    duration_minutes = fields.Int(allow_none=True, validate=validate.Range(min=1))
    max_score = fields.Decimal(allow_none=True, validate=validate.Range(min=0, min_inclusive=False))
    notes = fields.Str(allow_none=True)


class AdmissionAssessmentUpdateSchema(BaseSchema):
    status = fields.Str(validate=validate.OneOf(AssessmentStatus.ALL))
    scheduled_date = fields.DateTime()
    actual_date = fields.DateTime(allow_none=True)
    assessor_id = fields.Int(allow_none=True)
    score = fields.Decimal(allow_none=True, validate=validate.Range(min=0))
    max_score = fields.Decimal(allow_none=True, validate=validate.Range(min=0, min_inclusive=False))
    result = fields.Str(allow_none=True, validate=validate.OneOf(AssessmentResult.ALL))
    location = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)


class OfferSchema(BaseSchema):
    lead_id = fields.Int(required=True)
    expiry_date = fields.Date(required=True)
    terms = fields.Str(allow_none=True)
    offer_letter_url = fields.Str(allow_none=True)


class OfferStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(OfferStatus.ALL))


class PaymentSchema(BaseSchema):
    lead_id = fields.Int(required=True)
    amount = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    method = fields.Str(required=True, validate=validate.OneOf(PaymentMethod.ALL))
    status = fields.Str(load_default=PaymentStatus.COMPLETED, validate=validate.OneOf(PaymentStatus.ALL))
    type = fields.Str(required=True, validate=validate.OneOf(PaymentType.ALL))
    reference = fields.Str(allow_none=True)
    invoice_number = fields.Str(allow_none=True)
    payment_date = fields.DateTime(allow_none=True)
    notes = fields.Str(allow_none=True)


class ConvertLeadSchema(BaseSchema):
    class_name = fields.Str(allow_none=True)
    section = fields.Str(allow_none=True)
    roll_number = fields.Str(allow_none=True)
    admission_number = fields.Str(allow_none=True)
