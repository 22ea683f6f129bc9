"""
Admission routes: leads, applications, assessments, offers and payments
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.admission import (
    LeadSchema, PublicInquirySchema, LeadStatusSchema, InteractionSchema, FollowUpSchema,
    LeadSourceSchema, ApplicationSchema, ApplicationStatusSchema, StageUpdateSchema,
    RequirementUpdateSchema, AdmissionAssessmentSchema, AdmissionAssessmentUpdateSchema,
    OfferSchema, OfferStatusSchema, PaymentSchema, ConvertLeadSchema
)
from schoolerp.services import AdmissionService, AdmissionProcessService
from schoolerp.utils import create_response, get_pagination
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.helpers import parse_bool, parse_date, parse_int
from schoolerp.utils.permissions import Permission

admission_bp = Blueprint('admissions', __name__)

VIEW = Permission.VIEW_ADMISSION_INQUIRIES
EDIT = Permission.EDIT_ADMISSION_INQUIRY
WORKFLOW = Permission.MANAGE_ADMISSION_WORKFLOW
REPORTS = Permission.ACCESS_ADMISSION_REPORTS


def _date_filters():
    return {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'from_date': parse_date(request.args.get('from_date'), 'from_date'),
        'to_date': parse_date(request.args.get('to_date'), 'to_date'),
    }


# Leads

@admission_bp.route('/inquiry', methods=['POST'])
def public_inquiry():
    """Public registration form; no login"""
    data = load(PublicInquirySchema(), request.get_json(silent=True))
    lead = AdmissionService.create_lead(data)
    return jsonify(create_response(True, "Thank you, your inquiry has been registered", {
        'registration_number': lead.registration_number,
        'id': lead.id,
    })), 201


@admission_bp.route('/leads', methods=['POST'])
@permission_required(Permission.CREATE_ADMISSION_INQUIRY)
def create_lead():
    data = load(LeadSchema(), request.get_json(silent=True))
    lead = AdmissionService.create_lead(data, g.current_user)
    return jsonify(create_response(True, "Lead created", lead.to_dict())), 201


@admission_bp.route('/leads', methods=['GET'])
@permission_required(VIEW)
def list_leads():
    page, limit = get_pagination()
    filters = _date_filters()
    filters.update({
        'status': request.args.get('status'),
        'source_id': parse_int(request.args.get('source_id'), 'source_id'),
        'assigned_to_id': parse_int(request.args.get('assigned_to_id'), 'assigned_to_id'),
        'search': request.args.get('search'),
        'include_archived': parse_bool(request.args.get('include_archived')),
    })
    result = AdmissionService.list_leads(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Leads retrieved", result))


@admission_bp.route('/leads/<int:lead_id>', methods=['GET'])
@permission_required(VIEW)
def get_lead(lead_id):
    lead = AdmissionService.get_lead(lead_id, g.current_user)
    return jsonify(create_response(True, "Lead retrieved", lead.to_dict(detail=True)))


@admission_bp.route('/leads/<int:lead_id>', methods=['PUT'])
@permission_required(EDIT)
def update_lead(lead_id):
    data = load(LeadSchema(), request.get_json(silent=True), partial=True)
    lead = AdmissionService.update_lead(lead_id, data, g.current_user)
    return jsonify(create_response(True, "Lead updated", lead.to_dict()))


@admission_bp.route('/leads/<int:lead_id>/status', methods=['PUT'])
@permission_required(EDIT)
def change_lead_status(lead_id):
    data = load(LeadStatusSchema(), request.get_json(silent=True))
    lead = AdmissionService.change_status(lead_id, data['status'], g.current_user, data.get('notes'))
    return jsonify(create_response(True, f"Lead moved to {lead.status}", lead.to_dict()))


@admission_bp.route('/leads/<int:lead_id>/contacted', methods=['POST'])
@permission_required(EDIT)
def mark_contacted(lead_id):
    body = request.get_json(silent=True) or {}
    lead = AdmissionService.mark_contacted(lead_id, g.current_user, body.get('method'))
    return jsonify(create_response(True, "Lead marked as contacted", lead.to_dict()))


@admission_bp.route('/leads/<int:lead_id>/interactions', methods=['POST'])
@permission_required(EDIT)
def add_interaction(lead_id):
    data = load(InteractionSchema(), request.get_json(silent=True))
    interaction = AdmissionService.add_interaction(lead_id, data, g.current_user)
    return jsonify(create_response(True, "Interaction recorded", interaction.to_dict())), 201


@admission_bp.route('/leads/<int:lead_id>/follow-ups', methods=['POST'])
@permission_required(EDIT)
def add_follow_up(lead_id):
    data = load(FollowUpSchema(), request.get_json(silent=True))
    follow_up = AdmissionService.add_follow_up(lead_id, data, g.current_user)
    return jsonify(create_response(True, "Follow-up scheduled", follow_up.to_dict())), 201


@admission_bp.route('/follow-ups/<int:follow_up_id>', methods=['PUT'])
@permission_required(EDIT)
def update_follow_up(follow_up_id):
    data = load(FollowUpSchema(), request.get_json(silent=True), partial=True)
    follow_up = AdmissionService.update_follow_up(follow_up_id, data, g.current_user)
    return jsonify(create_response(True, "Follow-up updated", follow_up.to_dict()))


@admission_bp.route('/leads/<int:lead_id>/archive', methods=['POST'])
@permission_required(EDIT)
def archive_lead(lead_id):
    lead = AdmissionService.archive_lead(lead_id, g.current_user)
    return jsonify(create_response(True, "Lead archived", lead.to_dict()))


@admission_bp.route('/leads/<int:lead_id>/convert', methods=['POST'])
@permission_required(WORKFLOW)
def convert_lead(lead_id):
    data = load(ConvertLeadSchema(), request.get_json(silent=True) or {})
    student = AdmissionService.convert_to_student(lead_id, data, g.current_user)
    return jsonify(create_response(True, "Lead enrolled as student", student.to_dict())), 201


@admission_bp.route('/leads/<int:lead_id>/offer', methods=['GET'])
@permission_required(VIEW)
def get_lead_offer(lead_id):
    offer = AdmissionProcessService.get_offer_by_lead(lead_id, g.current_user)
    return jsonify(create_response(True, "Offer retrieved", offer.to_dict() if offer else None))


# Reports

@admission_bp.route('/kanban', methods=['GET'])
@permission_required(VIEW)
def leads_by_status():
    result = AdmissionService.leads_by_status(g.current_user, _date_filters())
    return jsonify(create_response(True, "Leads grouped by status", result))


@admission_bp.route('/stats/funnel', methods=['GET'])
@permission_required(REPORTS)
def funnel_stats():
    return jsonify(create_response(True, "Funnel statistics",
                                   AdmissionService.funnel_stats(g.current_user, _date_filters())))


@admission_bp.route('/stats/dashboard', methods=['GET'])
@permission_required(REPORTS, VIEW)
def dashboard_stats():
    return jsonify(create_response(True, "Dashboard statistics",
                                   AdmissionService.dashboard_stats(g.current_user, _date_filters())))


# Lead sources

@admission_bp.route('/sources', methods=['GET'])
@login_required
def list_sources():
    sources = AdmissionService.list_sources(parse_bool(request.args.get('include_inactive')))
    return jsonify(create_response(True, "Lead sources retrieved", sources))


@admission_bp.route('/sources', methods=['POST'])
@permission_required(WORKFLOW)
def create_source():
    data = load(LeadSourceSchema(), request.get_json(silent=True))
    source = AdmissionService.create_source(data)
    return jsonify(create_response(True, "Lead source created", source.to_dict())), 201


@admission_bp.route('/sources/<int:source_id>', methods=['PUT'])
@permission_required(WORKFLOW)
def update_source(source_id):
    data = load(LeadSourceSchema(), request.get_json(silent=True), partial=True)
    source = AdmissionService.update_source(source_id, data)
    return jsonify(create_response(True, "Lead source updated", source.to_dict()))


@admission_bp.route('/sources/<int:source_id>', methods=['DELETE'])
@permission_required(WORKFLOW)
def delete_source(source_id):
    AdmissionService.delete_source(source_id)
    return jsonify(create_response(True, "Lead source deleted"))


# Applications

@admission_bp.route('/applications', methods=['POST'])
@permission_required(WORKFLOW)
def create_application():
    data = load(ApplicationSchema(), request.get_json(silent=True))
    application = AdmissionProcessService.create_application(data, g.current_user)
    return jsonify(create_response(True, "Application created", application.to_dict())), 201


@admission_bp.route('/applications', methods=['GET'])
@permission_required(VIEW)
def list_applications():
    page, limit = get_pagination()
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'status': request.args.get('status'),
        'lead_id': parse_int(request.args.get('lead_id'), 'lead_id'),
    }
    result = AdmissionProcessService.list_applications(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Applications retrieved", result))


@admission_bp.route('/applications/<int:application_id>', methods=['GET'])
@permission_required(VIEW)
def get_application(application_id):
    application = AdmissionProcessService.get_application(application_id, g.current_user)
    return jsonify(create_response(True, "Application retrieved", application.to_dict()))


@admission_bp.route('/applications/<int:application_id>/status', methods=['PUT'])
@permission_required(WORKFLOW)
def update_application_status(application_id):
    data = load(ApplicationStatusSchema(), request.get_json(silent=True))
    application = AdmissionProcessService.update_application_status(application_id, data, g.current_user)
    return jsonify(create_response(True, f"Application {application.status}", application.to_dict()))


@admission_bp.route('/stages/<int:stage_id>', methods=['PUT'])
@permission_required(WORKFLOW)
def update_stage(stage_id):
    data = load(StageUpdateSchema(), request.get_json(silent=True))
    stage = AdmissionProcessService.update_stage(stage_id, data, g.current_user)
    return jsonify(create_response(True, "Stage updated", stage.to_dict()))


@admission_bp.route('/requirements/<int:requirement_id>', methods=['PUT'])
@permission_required(WORKFLOW)
def update_requirement(requirement_id):
    data = load(RequirementUpdateSchema(), request.get_json(silent=True))
    requirement = AdmissionProcessService.update_requirement(requirement_id, data, g.current_user)
    return jsonify(create_response(True, "Requirement updated", requirement.to_dict()))


# Assessments

@admission_bp.route('/assessments', methods=['POST'])
@permission_required(WORKFLOW)
def create_assessment():
    data = load(AdmissionAssessmentSchema(), request.get_json(silent=True))
    assessment = AdmissionProcessService.create_assessment(data, g.current_user)
    return jsonify(create_response(True, "Assessment scheduled", assessment.to_dict())), 201


@admission_bp.route('/assessments', methods=['GET'])
@permission_required(VIEW)
def list_assessments():
    filters = _date_filters()
    filters.update({
        'lead_id': parse_int(request.args.get('lead_id'), 'lead_id'),
        'type': request.args.get('type'),
        'status': request.args.get('status'),
    })
    return jsonify(create_response(True, "Assessments retrieved",
                                   AdmissionProcessService.list_assessments(g.current_user, filters)))


@admission_bp.route('/assessments/<int:assessment_id>', methods=['PUT'])
@permission_required(WORKFLOW)
def update_assessment(assessment_id):
    data = load(AdmissionAssessmentUpdateSchema(), request.get_json(silent=True))
    assessment = AdmissionProcessService.update_assessment(assessment_id, data, g.current_user)
    return jsonify(create_response(True, "Assessment updated", assessment.to_dict()))


# Offers

@admission_bp.route('/offers', methods=['POST'])
@permission_required(WORKFLOW)
def create_offer():
    data = load(OfferSchema(), request.get_json(silent=True))
    offer = AdmissionProcessService.create_offer(data, g.current_user)
    return jsonify(create_response(True, "Offer created", offer.to_dict())), 201


@admission_bp.route('/offers/<int:offer_id>/status', methods=['PUT'])
@permission_required(WORKFLOW)
def update_offer_status(offer_id):
    data = load(OfferStatusSchema(), request.get_json(silent=True))
    offer = AdmissionProcessService.update_offer_status(offer_id, data['status'], g.current_user)
    return jsonify(create_response(True, f"Offer {offer.status}", offer.to_dict()))


# Payments

@admission_bp.route('/payments', methods=['POST'])
@permission_required(WORKFLOW)
def record_payment():
    data = load(PaymentSchema(), request.get_json(silent=True))
    payment = AdmissionProcessService.record_payment(data, g.current_user)
    return jsonify(create_response(True, "Payment recorded", payment.to_dict())), 201


@admission_bp.route('/payments', methods=['GET'])
@permission_required(VIEW)
def list_payments():
    page, limit = get_pagination()
    filters = _date_filters()
    filters.update({
        'lead_id': parse_int(request.args.get('lead_id'), 'lead_id'),
        'type': request.args.get('type'),
        'status': request.args.get('status'),
        'method': request.args.get('method'),
    })
    result = AdmissionProcessService.list_payments(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Payments retrieved", result))
