"""
Branch and academic session routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.tenant import BranchSchema, AcademicSessionSchema
from schoolerp.services import RBACService, TenantService
from schoolerp.utils import AuthorizationError, create_response
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.permissions import Permission

tenant_bp = Blueprint('tenants', __name__)


@tenant_bp.route('/branches', methods=['GET'])
@login_required
def list_branches():
    return jsonify(create_response(True, "Branches retrieved", TenantService.list_branches(g.current_user)))


@tenant_bp.route('/branches', methods=['POST'])
@permission_required(Permission.MANAGE_BRANCHES)
def create_branch():
    if not RBACService.is_super_admin(g.current_user):
        raise AuthorizationError("Only a super admin can create branches")
    data = load(BranchSchema(), request.get_json(silent=True))
    branch = TenantService.create_branch(data)
    return jsonify(create_response(True, "Branch created", branch.to_dict())), 201


@tenant_bp.route('/branches/<int:branch_id>', methods=['GET'])
@login_required
def get_branch(branch_id):
    branch = TenantService.get_branch(branch_id, g.current_user)
    return jsonify(create_response(True, "Branch retrieved", branch.to_dict()))


@tenant_bp.route('/branches/<int:branch_id>', methods=['PUT'])
@permission_required(Permission.MANAGE_BRANCHES)
def update_branch(branch_id):
    data = load(BranchSchema(), request.get_json(silent=True), partial=True)
    branch = TenantService.update_branch(branch_id, data, g.current_user)
    return jsonify(create_response(True, "Branch updated", branch.to_dict()))


@tenant_bp.route('/branches/<int:branch_id>/sessions', methods=['GET'])
@login_required
def list_sessions(branch_id):
    return jsonify(create_response(True, "Sessions retrieved",
                                   TenantService.list_sessions(branch_id, g.current_user)))


@tenant_bp.route('/branches/<int:branch_id>/sessions', methods=['POST'])
@permission_required(Permission.MANAGE_BRANCHES)
def create_session(branch_id):
    data = load(AcademicSessionSchema(), request.get_json(silent=True))
    academic_session = TenantService.create_session(branch_id, data, g.current_user)
    return jsonify(create_response(True, "Session created", academic_session.to_dict())), 201


@tenant_bp.route('/sessions/<int:session_id>/current', methods=['POST'])
@permission_required(Permission.MANAGE_BRANCHES)
def set_current_session(session_id):
    academic_session = TenantService.set_current_session(session_id, g.current_user)
    return jsonify(create_response(True, "Current session updated", academic_session.to_dict()))
