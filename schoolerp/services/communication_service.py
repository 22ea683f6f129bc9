"""
Communication service: WhatsApp templates, sends and delivery webhooks
"""

import hashlib
import hmac
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app

from schoolerp.models import (
    db, User, WhatsAppTemplate, TemplateStatus, Message, MessageRecipient, RecipientStatus
)
from schoolerp.services import template_validator
from schoolerp.services.tenant_service import TenantService
from schoolerp.services.whatsapp_client import WhatsAppClient
from schoolerp.utils.exceptions import (
    AuthenticationError, ConflictError, ValidationError
)
from schoolerp.utils.helpers import log_error, log_info, log_warning, paginate_query

# Webhook status -> (recipient status, timestamp column)
WEBHOOK_STATUSES = {
    'sent': (RecipientStatus.SENT, 'sent_at'),
    'delivered': (RecipientStatus.DELIVERED, 'delivered_at'),
    'read': (RecipientStatus.READ, 'read_at'),
    'failed': (RecipientStatus.FAILED, None),
}
# Delivery receipts can arrive out of order; a status never moves backwards
# and FAILED is final.
STATUS_RANK = {
    RecipientStatus.PENDING: 0,
    RecipientStatus.SENT: 1,
    RecipientStatus.DELIVERED: 2,
    RecipientStatus.READ: 3,
    RecipientStatus.FAILED: 3,
}


class CommunicationService:
    """Communication service class"""

    # Templates

    @staticmethod
    def create_template(data: Dict[str, Any], user: User) -> WhatsAppTemplate:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        name_check = template_validator.validate_name(data['name'])
        if not name_check['is_valid']:
            raise ValidationError("Invalid template name", errors={'name': name_check['errors']})
        CommunicationService._check_unique(branch_id, data['name'], data['language'])

        template = WhatsAppTemplate(branch_id=branch_id, name=data['name'], category=data['category'],
                                    language=data['language'], content=data['content'],
                                    variables=template_validator.extract_variables(data['content']),
                                    status=TemplateStatus.DRAFT, is_active=data.get('is_active', True),
                                    created_by_id=user.id)
        db.session.add(template)
        db.session.commit()
        log_info(f"WhatsApp template {template.name} created with {len(template.variables)} variables")
        return template

    @staticmethod
    def list_templates(user: User, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = WhatsAppTemplate.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        if filters.get('status'):
            query = query.filter_by(status=filters['status'])
        if filters.get('category'):
            query = query.filter_by(category=filters['category'])
        if filters.get('active_only'):
            query = query.filter_by(is_active=True)
        return [t.to_dict() for t in query.order_by(WhatsAppTemplate.name).all()]

    @staticmethod
    def get_template(template_id: int, user: User) -> WhatsAppTemplate:
        return TenantService.get_scoped(WhatsAppTemplate, template_id, user, "Template")

    @staticmethod
    def update_template(template_id: int, data: Dict[str, Any], user: User) -> WhatsAppTemplate:
        """Edit a template; content changes send it back to DRAFT"""
        template = CommunicationService.get_template(template_id, user)
        if 'name' in data and data['name'] != template.name:
            name_check = template_validator.validate_name(data['name'])
            if not name_check['is_valid']:
                raise ValidationError("Invalid template name", errors={'name': name_check['errors']})
        name = data.get('name', template.name)
        language = data.get('language', template.language)
        if (name, language) != (template.name, template.language):
            CommunicationService._check_unique(template.branch_id, name, language)

        content_changed = any(
            key in data and data[key] != getattr(template, key)
            for key in ('name', 'category', 'language', 'content')
        )
        for key in ('name', 'category', 'language', 'content', 'is_active'):
            if key in data:
                setattr(template, key, data[key])
        if content_changed:
            template.variables = template_validator.extract_variables(template.content)
            template.status = TemplateStatus.DRAFT
            template.rejection_reason = None
        db.session.commit()
        log_info(f"WhatsApp template {template.name} updated ({template.status})")
        return template

    @staticmethod
    def delete_template(template_id: int, user: User) -> None:
        template = CommunicationService.get_template(template_id, user)
        if Message.query.filter_by(template_id=template.id).first():
            raise ConflictError("Template has been used for messages; deactivate it instead")
        db.session.delete(template)
        db.session.commit()
        log_info(f"WhatsApp template {template.name} deleted")

    @staticmethod
    def validate(data: Dict[str, Any]) -> Dict[str, Any]:
        return template_validator.validate_template(data['name'], data['category'], data['content'])

    @staticmethod
    def submit_template(template_id: int, user: User, client: Optional[WhatsAppClient] = None) -> Dict[str, Any]:
        """
        Validate a template and send it for provider approval

        With a business account configured the template is pushed to the
        provider, whose answer sets the status; otherwise it waits as PENDING
        for a manual provider status update.
        """
        template = CommunicationService.get_template(template_id, user)
        if template.status not in (TemplateStatus.DRAFT, TemplateStatus.REJECTED):
            raise ConflictError(f"Template is already {template.status}")
        check = template_validator.validate_template(template.name, template.category, template.content,
                                                     template.variables)
        if not check['is_valid']:
            raise ValidationError("Template does not meet provider policies",
                                  errors={'template': check['errors']})

        template.status = TemplateStatus.PENDING
        template.rejection_reason = None
        client = client or WhatsAppClient.from_config()
        if client.manages_templates:
            submitted = client.submit_template(template.name, template.category, template.language,
                                               check['components'])
            if submitted['status'] == TemplateStatus.APPROVED:
                template.status = TemplateStatus.APPROVED
                template.meta_template_name = template.name
            elif submitted['status'] == TemplateStatus.REJECTED:
                template.status = TemplateStatus.REJECTED
                template.rejection_reason = "Rejected by WhatsApp on submission"
        db.session.commit()
        log_info(f"WhatsApp template {template.name} submitted ({template.status})")
        return {'template': template.to_dict(), 'components': check['components'],
                'warnings': check['warnings']}

    @staticmethod
    def set_provider_status(template_id: int, data: Dict[str, Any], user: User) -> WhatsAppTemplate:
        template = CommunicationService.get_template(template_id, user)
        if template.status != TemplateStatus.PENDING:
            raise ConflictError("Only templates pending approval can be approved or rejected")
        template.status = data['status']
        if data['status'] == TemplateStatus.APPROVED:
            template.meta_template_name = data.get('meta_template_name') or template.name
            template.rejection_reason = None
        else:
            template.rejection_reason = data.get('rejection_reason')
        db.session.commit()
        log_info(f"WhatsApp template {template.name} -> {template.status}")
        return template

    @staticmethod
    def preview(template_id: int, parameters: Dict[str, Any], user: User) -> Dict[str, Any]:
        template = CommunicationService.get_template(template_id, user)
        prepared = template_validator.prepare_parameters(template.variables or [], parameters)
        return {
            'template_id': template.id,
            'rendered': template_validator.render(template.content, prepared['parameters']),
            'parameters': prepared['parameters'],
            'is_valid': prepared['is_valid'],
            'errors': prepared['errors'],
            'warnings': prepared['warnings'],
            'suggested_parameters': prepared['suggested_parameters'],
        }

    # Messages

    @staticmethod
    def send_message(data: Dict[str, Any], user: User, client: Optional[WhatsAppClient] = None) -> Message:
        """
        Send an approved template to every recipient

        Each recipient gets its own status. Parameter errors and provider
        failures mark the recipient FAILED; the message is stored either way.
        """
        template = CommunicationService.get_template(data['template_id'], user)
        if template.status != TemplateStatus.APPROVED:
            raise ValidationError("Only approved templates can be sent")
        if not template.is_active:
            raise ValidationError("Template is not active")

        client = client or WhatsAppClient.from_config()
        if not client.is_configured:
            log_warning(f"WhatsApp not configured; {len(data['recipients'])} recipients will fail")

        variables = list(template.variables or [])
        message = Message(branch_id=template.branch_id, template_id=template.id, sent_by_id=user.id)
        db.session.add(message)

        for entry in data['recipients']:
            prepared = template_validator.prepare_parameters(variables, entry.get('parameters'))
            recipient = MessageRecipient(name=entry.get('name'), phone=entry['phone'],
                                         parameters=prepared['parameters'])
            message.recipients.append(recipient)

            if not prepared['is_valid']:
                recipient.status = RecipientStatus.FAILED
                recipient.error_message = '; '.join(prepared['errors'])
                continue

            result = client.send_template(entry['phone'], template.meta_template_name or template.name,
                                          template.language, [prepared['parameters'][v] for v in variables])
            if result['success']:
                recipient.status = RecipientStatus.SENT
                recipient.provider_message_id = result['message_id']
                recipient.sent_at = datetime.utcnow()
            else:
                recipient.status = RecipientStatus.FAILED
                recipient.error_message = result['error']

        message.sent_count = sum(1 for r in message.recipients if r.status == RecipientStatus.SENT)
        message.failed_count = sum(1 for r in message.recipients if r.status == RecipientStatus.FAILED)
        db.session.commit()
        log_info(f"Message {message.id} with template {template.name}: "
                 f"{message.sent_count} sent, {message.failed_count} failed")
        return message

    @staticmethod
    def list_messages(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = Message.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        if filters.get('template_id'):
            query = query.filter_by(template_id=filters['template_id'])
        return paginate_query(query.order_by(Message.created_at.desc()), page, limit)

    @staticmethod
    def get_message(message_id: int, user: User) -> Message:
        return TenantService.get_scoped(Message, message_id, user, "Message")

    # Webhook

    @staticmethod
    def verify_webhook(mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> str:
        expected = current_app.config.get('WHATSAPP_VERIFY_TOKEN')
        if mode != 'subscribe' or not expected or token != expected:
            raise AuthenticationError("Webhook verification failed")
        log_info("WhatsApp webhook verified")
        return challenge or ''

    @staticmethod
    def verify_signature(body: bytes, signature: Optional[str]) -> None:
        """
        Check X-Hub-Signature-256 (sha256=<hex HMAC of the body>)

        Without WHATSAPP_APP_SECRET the check is skipped, unless
        WHATSAPP_REQUIRE_SIGNATURE is set.
        """
        secret = current_app.config.get('WHATSAPP_APP_SECRET')
        if not secret:
            if current_app.config.get('WHATSAPP_REQUIRE_SIGNATURE'):
                log_error("WhatsApp app secret not configured; webhook refused")
                raise AuthenticationError("Webhook signature cannot be verified")
            log_warning("WhatsApp app secret not configured; skipping webhook signature check")
            return

        algorithm, _, provided = (signature or '').partition('=')
        if algorithm != 'sha256' or not provided:
            log_warning("WhatsApp webhook without a valid signature header")
            raise AuthenticationError("Invalid webhook signature")
        expected = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, provided):
            log_warning("WhatsApp webhook signature mismatch")
            raise AuthenticationError("Invalid webhook signature")

    @staticmethod
    def process_webhook(payload: Dict[str, Any]) -> Dict[str, int]:
        """Apply delivery statuses; ids we never sent are ignored"""
        updated = 0
        ignored = 0
        for entry in payload.get('entry') or []:
            for change in entry.get('changes') or []:
                for status in (change.get('value') or {}).get('statuses') or []:
                    if CommunicationService._apply_status(status):
                        updated += 1
                    else:
                        ignored += 1
        db.session.commit()
        if updated or ignored:
            log_info(f"WhatsApp webhook: {updated} statuses applied, {ignored} ignored")
        return {'updated': updated, 'ignored': ignored}

    @staticmethod
    def _apply_status(status: Dict[str, Any]) -> bool:
        mapped = WEBHOOK_STATUSES.get(status.get('status'))
        if mapped is None or not status.get('id'):
            return False
        recipient = MessageRecipient.query.filter_by(provider_message_id=status['id']).first()
        if recipient is None:
            return False

        new_status, stamp = mapped
        if recipient.status == RecipientStatus.FAILED:
            return False
        if STATUS_RANK[new_status] < STATUS_RANK[recipient.status]:
            return False
        try:
            when = datetime.utcfromtimestamp(int(status['timestamp']))
        except (KeyError, TypeError, ValueError):
            when = datetime.utcnow()

        if new_status == RecipientStatus.FAILED:
            errors = status.get('errors') or [{}]
            recipient.error_message = errors[0].get('title') or errors[0].get('message') or 'Delivery failed'
            message = recipient.message
            message.failed_count += 1
            if recipient.status != RecipientStatus.PENDING:
                message.sent_count = max(message.sent_count - 1, 0)
        recipient.status = new_status
        if stamp and getattr(recipient, stamp) is None:
            setattr(recipient, stamp, when)
        return True

    @staticmethod
    def _check_unique(branch_id: int, name: str, language: str) -> None:
        if WhatsAppTemplate.query.filter_by(branch_id=branch_id, name=name, language=language).first():
            raise ConflictError(f"Template '{name}' ({language}) already exists")
