"""
WhatsApp template and message input schemas
"""

from marshmallow import fields, validate

from schoolerp.models.communication import TemplateCategory, TemplateStatus
from schoolerp.schemas.base import BaseSchema, valid_phone


class TemplateSchema(BaseSchema):
    branch_id = fields.Int(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=512))
    category = fields.Str(required=True, validate=validate.OneOf(TemplateCategory.ALL))
    language = fields.Str(load_default='en', validate=validate.Regexp(
        r'^[a-z]{2}(_[A-Z]{2})?$', error="Language must look like 'en' or 'en_US'"))
    content = fields.Str(required=True, validate=validate.Length(min=1, max=1024))
    is_active = fields.Bool()


class TemplateValidateSchema(BaseSchema):
    name = fields.Str(required=True)
    category = fields.Str(required=True, validate=validate.OneOf(TemplateCategory.ALL))
    content = fields.Str(required=True)


class TemplateProviderStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(
        (TemplateStatus.APPROVED, TemplateStatus.REJECTED)))
    meta_template_name = fields.Str(allow_none=True)
    rejection_reason = fields.Str(allow_none=True)


class PreviewSchema(BaseSchema):
    parameters = fields.Dict(keys=fields.Str(), values=fields.Raw(), load_default=dict)


class RecipientSchema(BaseSchema):
    name = fields.Str(allow_none=True)
    phone = fields.Str(required=True, validate=[validate.Length(max=20), valid_phone])
    parameters = fields.Dict(keys=fields.Str(), values=fields.Raw(), load_default=dict)


class SendMessageSchema(BaseSchema):
    template_id = fields.Int(required=True)
    recipients = fields.List(fields.Nested(RecipientSchema), required=True,
                             validate=validate.Length(min=1))
