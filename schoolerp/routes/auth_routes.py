"""
Authentication, user and role routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.auth import (
    LoginSchema, UserCreateSchema, RoleSchema, RolePermissionsSchema, RoleAssignmentSchema
)
from schoolerp.services import AuthService, RBACService, TenantService
from schoolerp.utils import create_response
from schoolerp.utils.decorators import login_required, permission_required
from schoolerp.utils.helpers import parse_int
from schoolerp.utils.permissions import ALL_PERMISSIONS, Permission

auth_bp = Blueprint('auth', __name__)


def _user_payload(user):
    data = user.to_dict()
    data['permissions'] = ALL_PERMISSIONS if RBACService.is_super_admin(user) else sorted(user.permission_set)
    return data


@auth_bp.route('/login', methods=['POST'])
def login():
    """Handle user login"""
    data = load(LoginSchema(), request.get_json(silent=True))
    user = AuthService.authenticate_user(data['email'], data['password'])
    return jsonify(create_response(True, "Login successful", {
        'token': AuthService.issue_token(user),
        'user': _user_payload(user),
    }))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Handle user logout"""
    AuthService.logout_user()
    return jsonify(create_response(True, "Logged out successfully"))


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Get current logged-in user"""
    return jsonify(create_response(True, "User found", _user_payload(g.current_user)))


@auth_bp.route('/token', methods=['GET'])
@login_required
def token():
    return jsonify(create_response(True, "Token issued", {'token': AuthService.issue_token(g.current_user)}))


# Users

@auth_bp.route('/users', methods=['GET'])
@permission_required(Permission.MANAGE_ROLES)
def list_users():
    branch_id = TenantService.resolve_branch_id(g.current_user, parse_int(request.args.get('branch_id'), 'branch_id'))
    return jsonify(create_response(True, "Users retrieved", RBACService.list_users(branch_id)))


@auth_bp.route('/users', methods=['POST'])
@permission_required(Permission.MANAGE_ROLES)
def create_user():
    data = load(UserCreateSchema(), request.get_json(silent=True))
    user = RBACService.create_user(data, g.current_user)
    return jsonify(create_response(True, "User created", user.to_dict())), 201


@auth_bp.route('/users/<int:user_id>/roles', methods=['POST'])
@permission_required(Permission.MANAGE_ROLES)
def assign_role(user_id):
    data = load(RoleAssignmentSchema(), request.get_json(silent=True))
    user = RBACService.assign_role(user_id, data['role_id'], g.current_user)
    return jsonify(create_response(True, "Role assigned", user.to_dict()))


@auth_bp.route('/users/<int:user_id>/roles/<int:role_id>', methods=['DELETE'])
@permission_required(Permission.MANAGE_ROLES)
def remove_role(user_id, role_id):
    user = RBACService.remove_role(user_id, role_id, g.current_user)
    return jsonify(create_response(True, "Role removed", user.to_dict()))


# Roles

@auth_bp.route('/roles', methods=['GET'])
@permission_required(Permission.MANAGE_ROLES)
def list_roles():
    return jsonify(create_response(True, "Roles retrieved", RBACService.list_roles()))


@auth_bp.route('/roles', methods=['POST'])
@permission_required(Permission.MANAGE_ROLES)
def create_role():
    data = load(RoleSchema(), request.get_json(silent=True))
    role = RBACService.create_role(data, g.current_user)
    return jsonify(create_response(True, "Role created", role.to_dict())), 201


@auth_bp.route('/roles/<int:role_id>/permissions', methods=['PUT'])
@permission_required(Permission.MANAGE_ROLES)
def set_role_permissions(role_id):
    data = load(RolePermissionsSchema(), request.get_json(silent=True))
    role = RBACService.set_role_permissions(role_id, data['permissions'], g.current_user)
    return jsonify(create_response(True, "Permissions updated", role.to_dict()))


@auth_bp.route('/roles/<int:role_id>', methods=['DELETE'])
@permission_required(Permission.MANAGE_ROLES)
def delete_role(role_id):
    RBACService.delete_role(role_id)
    return jsonify(create_response(True, "Role deleted"))


@auth_bp.route('/permissions', methods=['GET'])
@login_required
def list_permissions():
    return jsonify(create_response(True, "Permissions retrieved", ALL_PERMISSIONS))
