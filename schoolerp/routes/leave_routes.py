"""
Leave policy, balance and application routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.leave import (
    LeavePolicySchema, LeavePolicyUpdateSchema, LeaveApplicationSchema, LeaveDecisionSchema,
    BulkLeaveDecisionSchema, BalanceInitSchema
)
from schoolerp.services import LeaveService
from schoolerp.utils import ValidationError, create_response, get_pagination
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.helpers import parse_bool, parse_date, parse_int
from schoolerp.utils.permissions import Permission

leave_bp = Blueprint('leave', __name__)


# Policies

@leave_bp.route('/policies', methods=['GET'])
@login_required
def list_policies():
    branch_id = parse_int(request.args.get('branch_id'), 'branch_id')
    return jsonify(create_response(True, "Leave policies retrieved",
                                   LeaveService.list_policies(g.current_user, branch_id)))


@leave_bp.route('/policies', methods=['POST'])
@permission_required(Permission.MANAGE_LEAVE_POLICIES)
def create_policy():
    data = load(LeavePolicySchema(), request.get_json(silent=True))
    policy = LeaveService.create_policy(data, g.current_user)
    return jsonify(create_response(True, "Leave policy created", policy.to_dict())), 201


@leave_bp.route('/policies/<int:policy_id>', methods=['PUT'])
@permission_required(Permission.MANAGE_LEAVE_POLICIES)
def update_policy(policy_id):
    data = load(LeavePolicyUpdateSchema(), request.get_json(silent=True), partial=True)
    policy = LeaveService.update_policy(policy_id, data, g.current_user)
    return jsonify(create_response(True, "Leave policy updated", policy.to_dict()))


@leave_bp.route('/policies/<int:policy_id>', methods=['DELETE'])
@permission_required(Permission.MANAGE_LEAVE_POLICIES)
def delete_policy(policy_id):
    LeaveService.delete_policy(policy_id, g.current_user, force=parse_bool(request.args.get('force')))
    return jsonify(create_response(True, "Leave policy deleted"))


# Balances

@leave_bp.route('/balances/initialize', methods=['POST'])
@permission_required(Permission.MANAGE_LEAVE_POLICIES)
def initialize_balances():
    data = load(BalanceInitSchema(), request.get_json(silent=True) or {})
    if data.get('policy_id'):
        result = LeaveService.initialize_policy_balances(data['policy_id'], g.current_user, data.get('year'))
    elif data.get('staff_id'):
        result = LeaveService.initialize_staff_balances(data['staff_id'], g.current_user, data.get('year'))
    else:
        raise ValidationError("policy_id or staff_id is required")
    return jsonify(create_response(True, f"{result['initialized']} balances initialized", result))


@leave_bp.route('/balances/<int:staff_id>', methods=['GET'])
@login_required
def staff_balances(staff_id):
    year = parse_int(request.args.get('year'), 'year')
    return jsonify(create_response(True, "Leave balances retrieved",
                                   LeaveService.get_staff_balances(staff_id, g.current_user, year)))


# Applications

@leave_bp.route('/applications', methods=['POST'])
@login_required
def apply_leave():
    data = load(LeaveApplicationSchema(), request.get_json(silent=True))
    application = LeaveService.apply(data, g.current_user)
    return jsonify(create_response(True, "Leave application submitted", application.to_dict())), 201


@leave_bp.route('/applications', methods=['GET'])
@login_required
def list_applications():
    page, limit = get_pagination()
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'staff_id': parse_int(request.args.get('staff_id'), 'staff_id'),
        'policy_id': parse_int(request.args.get('policy_id'), 'policy_id'),
        'status': request.args.get('status'),
        'from_date': parse_date(request.args.get('from_date'), 'from_date'),
        'to_date': parse_date(request.args.get('to_date'), 'to_date'),
    }
    result = LeaveService.list_applications(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Leave applications retrieved", result))


@leave_bp.route('/applications/<int:application_id>/decision', methods=['PUT'])
@permission_required(Permission.MANAGE_LEAVE_APPLICATIONS)
def decide(application_id):
    data = load(LeaveDecisionSchema(), request.get_json(silent=True))
    application = LeaveService.decide(application_id, data['status'], g.current_user, data.get('comments'))
    return jsonify(create_response(True, f"Leave {application.status.lower()}", application.to_dict()))


@leave_bp.route('/applications/bulk-decision', methods=['PUT'])
@permission_required(Permission.MANAGE_LEAVE_APPLICATIONS)
def bulk_decide():
    data = load(BulkLeaveDecisionSchema(), request.get_json(silent=True))
    applications = LeaveService.bulk_decide(data['application_ids'], data['status'], g.current_user,
                                            data.get('comments'))
    return jsonify(create_response(True, f"{len(applications)} applications {data['status'].lower()}",
                                   [a.to_dict() for a in applications]))


@leave_bp.route('/applications/<int:application_id>/cancel', methods=['POST'])
@login_required
def cancel(application_id):
    application = LeaveService.cancel(application_id, g.current_user)
    return jsonify(create_response(True, "Leave application cancelled", application.to_dict()))


@leave_bp.route('/analytics', methods=['GET'])
@permission_required(Permission.VIEW_LEAVES, Permission.MANAGE_LEAVE_APPLICATIONS)
def analytics():
    result = LeaveService.analytics(g.current_user,
                                    parse_int(request.args.get('branch_id'), 'branch_id'),
                                    parse_int(request.args.get('year'), 'year'))
    return jsonify(create_response(True, "Leave analytics", result))
