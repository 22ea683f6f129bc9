"""
WhatsApp template, message and webhook routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.communication import (
    TemplateSchema, TemplateValidateSchema, TemplateProviderStatusSchema, PreviewSchema,
    SendMessageSchema
)
from schoolerp.services import CommunicationService
from schoolerp.utils import create_response, get_pagination
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.helpers import parse_bool, parse_int
from schoolerp.utils.permissions import Permission

communication_bp = Blueprint('communication', __name__)

VIEW = Permission.VIEW_COMMUNICATION
TEMPLATES = Permission.MANAGE_WHATSAPP_TEMPLATES


# Templates

@communication_bp.route('/templates', methods=['GET'])
@permission_required(VIEW, TEMPLATES)
def list_templates():
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'status': request.args.get('status'),
        'category': request.args.get('category'),
        'active_only': parse_bool(request.args.get('active_only')),
    }
    return jsonify(create_response(True, "Templates retrieved",
                                   CommunicationService.list_templates(g.current_user, filters)))


@communication_bp.route('/templates', methods=['POST'])
@permission_required(TEMPLATES)
def create_template():
    data = load(TemplateSchema(), request.get_json(silent=True))
    template = CommunicationService.create_template(data, g.current_user)
    return jsonify(create_response(True, "Template created", template.to_dict())), 201


@communication_bp.route('/templates/validate', methods=['POST'])
@login_required
def validate_template():
    data = load(TemplateValidateSchema(), request.get_json(silent=True))
    result = CommunicationService.validate(data)
    message = "Template is valid" if result['is_valid'] else "Template has policy problems"
    return jsonify(create_response(True, message, result))


@communication_bp.route('/templates/<int:template_id>', methods=['GET'])
@permission_required(VIEW, TEMPLATES)
def get_template(template_id):
    template = CommunicationService.get_template(template_id, g.current_user)
    return jsonify(create_response(True, "Template retrieved", template.to_dict()))


@communication_bp.route('/templates/<int:template_id>', methods=['PUT'])
@permission_required(TEMPLATES)
def update_template(template_id):
    data = load(TemplateSchema(), request.get_json(silent=True), partial=True)
    template = CommunicationService.update_template(template_id, data, g.current_user)
    return jsonify(create_response(True, "Template updated", template.to_dict()))


@communication_bp.route('/templates/<int:template_id>', methods=['DELETE'])
@permission_required(TEMPLATES)
def delete_template(template_id):
    CommunicationService.delete_template(template_id, g.current_user)
    return jsonify(create_response(True, "Template deleted"))


@communication_bp.route('/templates/<int:template_id>/submit', methods=['POST'])
@permission_required(TEMPLATES)
def submit_template(template_id):
    result = CommunicationService.submit_template(template_id, g.current_user)
    return jsonify(create_response(True, "Template submitted for approval", result))


@communication_bp.route('/templates/<int:template_id>/provider-status', methods=['PUT'])
@permission_required(TEMPLATES)
def set_provider_status(template_id):
    data = load(TemplateProviderStatusSchema(), request.get_json(silent=True))
    template = CommunicationService.set_provider_status(template_id, data, g.current_user)
    return jsonify(create_response(True, f"Template {template.status.lower()}", template.to_dict()))


@communication_bp.route('/templates/<int:template_id>/preview', methods=['POST'])
@permission_required(VIEW, TEMPLATES)
def preview_template(template_id):
    data = load(PreviewSchema(), request.get_json(silent=True) or {})
    return jsonify(create_response(True, "Template preview",
                                   CommunicationService.preview(template_id, data['parameters'], g.current_user)))


# Messages

@communication_bp.route('/messages', methods=['POST'])
@permission_required(Permission.SEND_MESSAGES)
def send_message():
    data = load(SendMessageSchema(), request.get_json(silent=True))
    message = CommunicationService.send_message(data, g.current_user)
    return jsonify(create_response(True, f"{message.sent_count} sent, {message.failed_count} failed",
                                   message.to_dict(include_recipients=True))), 201


@communication_bp.route('/messages', methods=['GET'])
@permission_required(VIEW, Permission.SEND_MESSAGES)
def list_messages():
    page, limit = get_pagination()
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'template_id': parse_int(request.args.get('template_id'), 'template_id'),
    }
    result = CommunicationService.list_messages(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Messages retrieved", result))


@communication_bp.route('/messages/<int:message_id>', methods=['GET'])
@permission_required(VIEW, Permission.SEND_MESSAGES)
def get_message(message_id):
    message = CommunicationService.get_message(message_id, g.current_user)
    return jsonify(create_response(True, "Message retrieved", message.to_dict(include_recipients=True)))


# Provider webhook

@communication_bp.route('/webhook', methods=['GET'])
def verify_webhook():
    challenge = CommunicationService.verify_webhook(request.args.get('hub.mode'),
                                                    request.args.get('hub.verify_token'),
                                                    request.args.get('hub.challenge'))
    return challenge, 200, {'Content-Type': 'text/plain'}


@communication_bp.route('/webhook', methods=['POST'])
def receive_webhook():
    CommunicationService.verify_signature(request.get_data(), request.headers.get('X-Hub-Signature-256'))
    result = CommunicationService.process_webhook(request.get_json(silent=True) or {})
    return jsonify(create_response(True, "Webhook processed", result))
