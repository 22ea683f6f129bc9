"""
Branch scoping and branch/session administration
"""

from typing import Any, Dict, List, Optional

from schoolerp.models import db, Branch, AcademicSession, User
from schoolerp.services.rbac_service import RBACService
from schoolerp.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from schoolerp.utils.helpers import log_info
from schoolerp.utils.validators import validate_date_range


class TenantService:
    """Branch scoping and branch/session administration"""

    @staticmethod
    def resolve_branch_id(user: User, requested: Optional[int] = None) -> Optional[int]:
        """
        Effective branch of a request

        Super admins may address any branch, or every branch when none is
        requested (None). Everyone else is pinned to their own branch.
        """
        if RBACService.is_super_admin(user):
            return requested
        if user.branch_id is None:
            raise AuthorizationError("User is not assigned to a branch")
        if requested is not None and int(requested) != user.branch_id:
            raise AuthorizationError("Access to this branch is not allowed")
        return user.branch_id

    @staticmethod
    def require_branch_id(user: User, requested: Optional[int] = None) -> int:
        """Like resolve_branch_id, but a concrete branch is mandatory"""
        branch_id = TenantService.resolve_branch_id(user, requested)
        if branch_id is None:
            raise ValidationError("branch_id is required")
        if db.session.get(Branch, branch_id) is None:
            raise NotFoundError("Branch not found")
        return branch_id

    @staticmethod
    def get_scoped(model, record_id: int, user: User, label: str):
        """Load a branch-owned record, hiding records of other branches"""
        record = db.session.get(model, record_id)
        if record is None or not TenantService.can_access(user, record.branch_id):
            raise NotFoundError(f"{label} not found")
        return record

    @staticmethod
    def can_access(user: User, branch_id: int) -> bool:
        return RBACService.is_super_admin(user) or user.branch_id == branch_id

    @staticmethod
    def create_branch(data: Dict[str, Any]) -> Branch:
        if Branch.query.filter_by(code=data['code']).first():
            raise ConflictError(f"Branch code '{data['code']}' already exists")
        branch = Branch(**data)
        db.session.add(branch)
        db.session.commit()
        log_info(f"Branch {branch.code} created")
        return branch

    @staticmethod
    def list_branches(user: User) -> List[Dict[str, Any]]:
        query = Branch.query
        if not RBACService.is_super_admin(user):
            query = query.filter_by(id=user.branch_id)
        return [b.to_dict() for b in query.order_by(Branch.name).all()]

    @staticmethod
    def get_branch(branch_id: int, user: User) -> Branch:
        if not TenantService.can_access(user, branch_id):
            raise NotFoundError("Branch not found")
        branch = db.session.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError("Branch not found")
        return branch

    @staticmethod
    def update_branch(branch_id: int, data: Dict[str, Any], user: User) -> Branch:
        branch = TenantService.get_branch(branch_id, user)
        code = data.get('code')
        if code and code != branch.code and Branch.query.filter_by(code=code).first():
            raise ConflictError(f"Branch code '{code}' already exists")
        for key, value in data.items():
            setattr(branch, key, value)
        db.session.commit()
        log_info(f"Branch {branch.code} updated")
        return branch

    @staticmethod
    def create_session(branch_id: int, data: Dict[str, Any], user: User) -> AcademicSession:
        branch = TenantService.get_branch(branch_id, user)
        validate_date_range(data['start_date'], data['end_date'])
        if AcademicSession.query.filter_by(branch_id=branch.id, name=data['name']).first():
            raise ConflictError(f"Session '{data['name']}' already exists for this branch")

        academic_session = AcademicSession(branch_id=branch.id, name=data['name'],
                                           start_date=data['start_date'], end_date=data['end_date'],
                                           is_current=False)
        db.session.add(academic_session)
        db.session.flush()
        if data.get('is_current'):
            TenantService._make_current(academic_session)
        db.session.commit()
        log_info(f"Session {academic_session.name} created for branch {branch.code}")
        return academic_session

    @staticmethod
    def list_sessions(branch_id: int, user: User) -> List[Dict[str, Any]]:
        branch = TenantService.get_branch(branch_id, user)
        return [s.to_dict() for s in branch.sessions]

    @staticmethod
    def set_current_session(session_id: int, user: User) -> AcademicSession:
        academic_session = TenantService.get_scoped(AcademicSession, session_id, user, "Session")
        TenantService._make_current(academic_session)
        db.session.commit()
        log_info(f"Session {academic_session.name} is now current for branch {academic_session.branch_id}")
        return academic_session

    @staticmethod
    def current_session(branch_id: int) -> Optional[AcademicSession]:
        return AcademicSession.query.filter_by(branch_id=branch_id, is_current=True).first()

    @staticmethod
    def _make_current(academic_session: AcademicSession) -> None:
        AcademicSession.query.filter(
            AcademicSession.branch_id == academic_session.branch_id,
            AcademicSession.id != academic_session.id,
        ).update({'is_current': False}, synchronize_session=False)
        academic_session.is_current = True
