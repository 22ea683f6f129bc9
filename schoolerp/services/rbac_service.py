"""
Role based access control
"""

from typing import Any, Dict, Iterable, List

from schoolerp.models import db, Branch, Role, RolePermission, User
from schoolerp.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from schoolerp.utils.helpers import log_info
from schoolerp.utils.permissions import SUPER_ADMIN_ROLE


class RBACService:
    """Permission checks and role administration"""

    @staticmethod
    def is_super_admin(user: User) -> bool:
        if user is None:
            return False
        return bool(user.is_super_admin) or any(r.name == SUPER_ADMIN_ROLE for r in user.roles)

    @staticmethod
    def has_permission(user: User, permission: str) -> bool:
        if user is None:
            return False
        if RBACService.is_super_admin(user):
            return True
        return permission in user.permission_set

    @staticmethod
    def has_any_permission(user: User, permissions: Iterable[str]) -> bool:
        return any(RBACService.has_permission(user, p) for p in permissions)

    @staticmethod
    def require_permission(user: User, *permissions: str) -> None:
        """Raise unless the user holds at least one of the permissions"""
        if not RBACService.has_any_permission(user, permissions):
            raise AuthorizationError("You do not have permission to perform this action")

    @staticmethod
    def list_roles() -> List[Dict[str, Any]]:
        return [role.to_dict() for role in Role.query.order_by(Role.name).all()]

    @staticmethod
    def create_role(data: Dict[str, Any], actor: User) -> Role:
        if Role.query.filter_by(name=data['name']).first():
            raise ConflictError(f"Role '{data['name']}' already exists")
        RBACService._check_grantable(actor, data.get('permissions', []))
        role = Role(name=data['name'], description=data.get('description'))
        role.permissions = [RolePermission(permission=p) for p in sorted(set(data.get('permissions', [])))]
        db.session.add(role)
        db.session.commit()
        log_info(f"Role {role.name} created")
        return role

    @staticmethod
    def set_role_permissions(role_id: int, permissions: List[str], actor: User) -> Role:
        """Replace the permission list of a role; system roles need a super admin"""
        role = RBACService._get_role(role_id)
        if role.is_system and not RBACService.is_super_admin(actor):
            raise AuthorizationError("Only a super admin can change system role permissions")
        RBACService._check_grantable(actor, permissions)
        role.permissions.clear()
        db.session.flush()
        role.permissions.extend(RolePermission(permission=p) for p in sorted(set(permissions)))
        db.session.commit()
        log_info(f"Role {role.name} permissions replaced ({len(role.permissions)})")
        return role

    @staticmethod
    def delete_role(role_id: int) -> None:
        role = RBACService._get_role(role_id)
        if role.is_system:
            raise ValidationError("System roles cannot be deleted")
        db.session.delete(role)
        db.session.commit()
        log_info(f"Role {role.name} deleted")

    @staticmethod
    def assign_role(user_id: int, role_id: int, actor: User) -> User:
        user = RBACService._get_user(user_id, actor)
        role = RBACService._get_role(role_id)
        if role.name == SUPER_ADMIN_ROLE and not RBACService.is_super_admin(actor):
            raise AuthorizationError("Only a super admin can grant the super admin role")
        RBACService._check_grantable(actor, [p.permission for p in role.permissions])
        if role not in user.roles:
            user.roles.append(role)
            db.session.commit()
            log_info(f"Role {role.name} assigned to {user.email}")
        return user

    @staticmethod
    def remove_role(user_id: int, role_id: int, actor: User) -> User:
        user = RBACService._get_user(user_id, actor)
        role = RBACService._get_role(role_id)
        if role.name == SUPER_ADMIN_ROLE and not RBACService.is_super_admin(actor):
            raise AuthorizationError("Only a super admin can remove the super admin role")
        if role in user.roles:
            user.roles.remove(role)
            db.session.commit()
            log_info(f"Role {role.name} removed from {user.email}")
        return user

    @staticmethod
    def create_user(data: Dict[str, Any], actor: User) -> User:
        """Create a login account; only super admins may create other super admins"""
        email = data['email'].strip().lower()
        if User.query.filter_by(email=email).first():
            raise ConflictError("A user with this email already exists")

        is_super = bool(data.get('is_super_admin'))
        if is_super and not RBACService.is_super_admin(actor):
            raise AuthorizationError("Only a super admin can create super admins")

        branch_id = data.get('branch_id')
        if not is_super:
            if not RBACService.is_super_admin(actor):
                branch_id = actor.branch_id
            if branch_id is None:
                raise ValidationError("branch_id is required")
            if db.session.get(Branch, branch_id) is None:
                raise NotFoundError("Branch not found")

        user = User(email=email, first_name=data['first_name'], last_name=data['last_name'],
                    branch_id=branch_id, is_super_admin=is_super)
        user.set_password(data['password'])
        for name in data.get('roles', []):
            role = Role.query.filter_by(name=name).first()
            if role is None:
                raise ValidationError(f"Unknown role '{name}'")
            if role.name == SUPER_ADMIN_ROLE and not RBACService.is_super_admin(actor):
                raise AuthorizationError("Only a super admin can grant the super admin role")
            RBACService._check_grantable(actor, [p.permission for p in role.permissions])
            user.roles.append(role)

        db.session.add(user)
        db.session.commit()
        log_info(f"User {user.email} created")
        return user

    @staticmethod
    def list_users(branch_id=None) -> List[Dict[str, Any]]:
        query = User.query
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        return [u.to_dict() for u in query.order_by(User.email).all()]

    @staticmethod
    def _get_role(role_id: int) -> Role:
        role = db.session.get(Role, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    @staticmethod
    def _check_grantable(actor: User, permissions: Iterable[str]) -> None:
        """Non super admins can only hand out permissions they hold themselves"""
        if RBACService.is_super_admin(actor):
            return
        missing = sorted(set(permissions) - actor.permission_set)
        if missing:
            raise AuthorizationError(f"Cannot grant permissions you do not hold: {', '.join(missing)}")

    @staticmethod
    def _get_user(user_id: int, actor: User) -> User:
        """Users outside the actor's branch are reported as missing"""
        user = db.session.get(User, user_id)
        if user is None or not (RBACService.is_super_admin(actor) or user.branch_id == actor.branch_id):
            raise NotFoundError("User not found")
        return user
