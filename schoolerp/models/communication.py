"""
WhatsApp templates and outbound messages
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso


class TemplateCategory:
    AUTHENTICATION = 'AUTHENTICATION'
    MARKETING = 'MARKETING'
    UTILITY = 'UTILITY'
    ALL = (AUTHENTICATION, MARKETING, UTILITY)


class TemplateStatus:
    DRAFT = 'DRAFT'
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    ALL = (DRAFT, PENDING, APPROVED, REJECTED)


class RecipientStatus:
    PENDING = 'PENDING'
    SENT = 'SENT'
    DELIVERED = 'DELIVERED'
    READ = 'READ'
    FAILED = 'FAILED'
    ALL = (PENDING, SENT, DELIVERED, READ, FAILED)


class WhatsAppTemplate(db.Model):
    __tablename__ = 'whatsapp_templates'
    __table_args__ = (
        db.UniqueConstraint('branch_id', 'name', 'language', name='uq_template_branch_name_lang'),
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(512), nullable=False)
    category = db.Column(db.Enum(*TemplateCategory.ALL, name='template_category'), nullable=False)
    language = db.Column(db.String(10), nullable=False, default='en')
    content = db.Column(db.Text, nullable=False)
    variables = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.Enum(*TemplateStatus.ALL, name='template_status'),
                       default=TemplateStatus.DRAFT, nullable=False)
    meta_template_name = db.Column(db.String(512))
    rejection_reason = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'category': self.category,
            'language': self.language,
            'content': self.content,
            'variables': list(self.variables or []),
            'status': self.status,
            'meta_template_name': self.meta_template_name,
            'rejection_reason': self.rejection_reason,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class Message(db.Model):
    """One template send to a list of recipients"""
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey('whatsapp_templates.id'), nullable=False)
    sent_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    sent_count = db.Column(db.Integer, default=0, nullable=False)
    failed_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    template = db.relationship('WhatsAppTemplate')
    recipients = db.relationship('MessageRecipient', backref='message', lazy=True,
                                 cascade='all, delete-orphan')

    def to_dict(self, include_recipients: bool = False):
        counts = {status: 0 for status in RecipientStatus.ALL}
        for recipient in self.recipients:
            counts[recipient.status] += 1
        data = {
            'id': self.id,
            'branch_id': self.branch_id,
            'template_id': self.template_id,
            'template_name': self.template.name if self.template else None,
            'sent_by_id': self.sent_by_id,
            'sent_count': self.sent_count,
            'failed_count': self.failed_count,
            'total_recipients': len(self.recipients),
            'status_counts': counts,
            'created_at': iso(self.created_at),
        }
        if include_recipients:
            data['recipients'] = [r.to_dict() for r in self.recipients]
        return data


class MessageRecipient(db.Model):
    __tablename__ = 'message_recipients'

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey('messages.id'), nullable=False, index=True)
    name = db.Column(db.String(200))
    phone = db.Column(db.String(20), nullable=False)
    parameters = db.Column(db.JSON, nullable=False, default=dict)
    status = db.Column(db.Enum(*RecipientStatus.ALL, name='recipient_status'),
                       default=RecipientStatus.PENDING, nullable=False)
    provider_message_id = db.Column(db.String(128), index=True)
    error_message = db.Column(db.Text)
    sent_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    read_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'parameters': dict(self.parameters or {}),
            'status': self.status,
            'provider_message_id': self.provider_message_id,
            'error_message': self.error_message,
            'sent_at': iso(self.sent_at),
            'delivered_at': iso(self.delivered_at),
            'read_at': iso(self.read_at),
        }
