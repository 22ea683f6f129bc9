"""
Courtesy call feedback routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.courtesy_call import CourtesyCallSchema, CourtesyCallUpdateSchema
from schoolerp.services import CourtesyCallService
from schoolerp.utils import create_response, get_pagination
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.helpers import parse_date, parse_int
from schoolerp.utils.permissions import Permission

courtesy_call_bp = Blueprint('courtesy_calls', __name__)


def _filters():
    return {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'from_date': parse_date(request.args.get('from_date'), 'from_date'),
        'to_date': parse_date(request.args.get('to_date'), 'to_date'),
    }


@courtesy_call_bp.route('', methods=['POST'])
@permission_required(Permission.CREATE_COURTESY_CALL_FEEDBACK)
def create_feedback():
    data = load(CourtesyCallSchema(), request.get_json(silent=True))
    feedback = CourtesyCallService.create(data, g.current_user)
    return jsonify(create_response(True, "Feedback recorded", feedback.to_dict())), 201


@courtesy_call_bp.route('', methods=['GET'])
@login_required
def list_feedback():
    page, limit = get_pagination()
    filters = _filters()
    filters.update({
        'student_id': parse_int(request.args.get('student_id'), 'student_id'),
        'caller_id': parse_int(request.args.get('caller_id'), 'caller_id'),
        'caller_type': request.args.get('caller_type'),
        'class_name': request.args.get('class_name'),
        'section': request.args.get('section'),
    })
    result = CourtesyCallService.list_feedback(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Feedback retrieved", result))


@courtesy_call_bp.route('/students/<int:student_id>', methods=['GET'])
@login_required
def student_history(student_id):
    return jsonify(create_response(True, "Feedback history retrieved",
                                   CourtesyCallService.student_history(student_id, g.current_user)))


@courtesy_call_bp.route('/stats', methods=['GET'])
@login_required
def stats():
    return jsonify(create_response(True, "Feedback statistics", CourtesyCallService.stats(g.current_user, _filters())))


@courtesy_call_bp.route('/<int:feedback_id>', methods=['GET'])
@login_required
def get_feedback(feedback_id):
    feedback = CourtesyCallService.get(feedback_id, g.current_user)
    return jsonify(create_response(True, "Feedback retrieved", feedback.to_dict()))


@courtesy_call_bp.route('/<int:feedback_id>', methods=['PUT'])
@permission_required(Permission.EDIT_COURTESY_CALL_FEEDBACK)
def update_feedback(feedback_id):
    data = load(CourtesyCallUpdateSchema(), request.get_json(silent=True))
    feedback = CourtesyCallService.update(feedback_id, data, g.current_user)
    return jsonify(create_response(True, "Feedback updated", feedback.to_dict()))


@courtesy_call_bp.route('/<int:feedback_id>', methods=['DELETE'])
@permission_required(Permission.DELETE_COURTESY_CALL_FEEDBACK)
def delete_feedback(feedback_id):
    CourtesyCallService.delete(feedback_id, g.current_user)
    return jsonify(create_response(True, "Feedback deleted"))
