"""
Courtesy call feedback service
"""

from datetime import datetime, time
from typing import Any, Dict

from sqlalchemy import func

from schoolerp.models import db, User, Student, Staff, CourtesyCallFeedback, CallerType
from schoolerp.services.rbac_service import RBACService
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import AuthorizationError, NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info
from schoolerp.utils.permissions import Permission


class CourtesyCallService:
    """Courtesy call service class"""

    @staticmethod
    def create(data: Dict[str, Any], user: User) -> CourtesyCallFeedback:
        caller = CourtesyCallService._caller(user)
        student = TenantService.get_scoped(Student, data['student_id'], user, "Student")
        if student.branch_id != caller.branch_id:
            raise ValidationError("Student belongs to another branch")

        caller_type = CallerType.TEACHER if caller.is_teacher else CallerType.HEAD
        feedback = CourtesyCallFeedback(
            student_id=student.id,
            branch_id=student.branch_id,
            caller_id=caller.id,
            caller_type=caller_type,
            purpose=data.get('purpose'),
            feedback=data['feedback'],
            follow_up=data.get('follow_up'),
            # Head feedback is always private.
            is_private=True if caller_type == CallerType.HEAD else data.get('is_private', False),
            call_date=data.get('call_date') or datetime.utcnow(),
        )
        db.session.add(feedback)
        db.session.commit()
        log_info(f"Courtesy call {feedback.id} recorded by {caller_type} {caller.id} for student {student.id}")
        return feedback

    @staticmethod
    def list_feedback(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        view_all = CourtesyCallService._view_all(user)
        query = CourtesyCallFeedback.query.join(Student, CourtesyCallFeedback.student_id == Student.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(CourtesyCallFeedback.branch_id == branch_id)
        if not view_all:
            query = query.filter(CourtesyCallFeedback.caller_id == CourtesyCallService._caller(user).id)

        if filters.get('student_id'):
            query = query.filter(CourtesyCallFeedback.student_id == filters['student_id'])
        if filters.get('caller_id'):
            query = query.filter(CourtesyCallFeedback.caller_id == filters['caller_id'])
        if filters.get('caller_type'):
            query = query.filter(CourtesyCallFeedback.caller_type == filters['caller_type'])
        if filters.get('class_name'):
            query = query.filter(Student.class_name == filters['class_name'])
        if filters.get('section'):
            query = query.filter(Student.section == filters['section'])
        if filters.get('from_date'):
            query = query.filter(CourtesyCallFeedback.call_date >= datetime.combine(filters['from_date'], time.min))
        if filters.get('to_date'):
            query = query.filter(CourtesyCallFeedback.call_date <= datetime.combine(filters['to_date'], time.max))

        total = query.order_by(None).count()
        items = query.order_by(CourtesyCallFeedback.call_date.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return {
            'items': [f.to_dict() for f in items],
            'total': total,
            'page': page,
            'limit': limit,
            'pages': (total + limit - 1) // limit,
        }

    @staticmethod
    def student_history(student_id: int, user: User) -> Dict[str, Any]:
        """
        Every call made for one student

        Callers without the view-all permission see other callers'
        private calls with the feedback and follow-up blanked out.
        """
        view_all = CourtesyCallService._view_all(user)
        student = TenantService.get_scoped(Student, student_id, user, "Student")
        own_id = None
        if not view_all:
            own_id = CourtesyCallService._caller(user).id

        calls = CourtesyCallFeedback.query.filter_by(student_id=student.id) \
            .order_by(CourtesyCallFeedback.call_date.desc()).all()
        return {
            'student': student.to_dict(),
            'feedback': [c.to_dict(hide_private=not view_all and c.caller_id != own_id) for c in calls],
        }

    @staticmethod
    def get(feedback_id: int, user: User) -> CourtesyCallFeedback:
        feedback = TenantService.get_scoped(CourtesyCallFeedback, feedback_id, user, "Feedback")
        if not CourtesyCallService._view_all(user) and feedback.caller_id != CourtesyCallService._caller(user).id:
            raise NotFoundError("Feedback not found")
        return feedback

    @staticmethod
    def update(feedback_id: int, data: Dict[str, Any], user: User) -> CourtesyCallFeedback:
        feedback = TenantService.get_scoped(CourtesyCallFeedback, feedback_id, user, "Feedback")
        view_all = RBACService.has_permission(user, Permission.VIEW_ALL_COURTESY_CALL_FEEDBACK)
        caller = user.staff_profile
        own = caller is not None and feedback.caller_id == caller.id
        if not own and not view_all:
            raise AuthorizationError("You can only edit your own feedback")

        for key in ('purpose', 'feedback', 'follow_up', 'call_date'):
            if key in data:
                setattr(feedback, key, data[key])
        if 'is_private' in data:
            if feedback.caller_type == CallerType.HEAD and not data['is_private']:
                raise ValidationError("Head feedback must stay private")
            feedback.is_private = data['is_private']
        db.session.commit()
        log_info(f"Courtesy call {feedback.id} updated")
        return feedback

    @staticmethod
    def delete(feedback_id: int, user: User) -> None:
        feedback = TenantService.get_scoped(CourtesyCallFeedback, feedback_id, user, "Feedback")
        db.session.delete(feedback)
        db.session.commit()
        log_info(f"Courtesy call {feedback_id} deleted")

    @staticmethod
    def stats(user: User, filters: Dict[str, Any]) -> Dict[str, Any]:
        view_all = CourtesyCallService._view_all(user)
        query = CourtesyCallFeedback.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(CourtesyCallFeedback.branch_id == branch_id)
        if not view_all:
            query = query.filter(CourtesyCallFeedback.caller_id == CourtesyCallService._caller(user).id)
        if filters.get('from_date'):
            query = query.filter(CourtesyCallFeedback.call_date >= datetime.combine(filters['from_date'], time.min))
        if filters.get('to_date'):
            query = query.filter(CourtesyCallFeedback.call_date <= datetime.combine(filters['to_date'], time.max))

        month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        by_type = {caller_type: 0 for caller_type in CallerType.ALL}
        rows = query.with_entities(CourtesyCallFeedback.caller_type, func.count(CourtesyCallFeedback.id)) \
            .group_by(CourtesyCallFeedback.caller_type).all()
        for caller_type, count in rows:
            by_type[caller_type] = count

        return {
            'total': query.count(),
            'this_month': query.filter(CourtesyCallFeedback.call_date >= month_start).count(),
            'by_caller_type': by_type,
            'students_contacted': query.with_entities(
                func.count(func.distinct(CourtesyCallFeedback.student_id))).scalar() or 0,
        }

    @staticmethod
    def _view_all(user: User) -> bool:
        """True for view-all, False for view-own; neither is refused"""
        if RBACService.has_permission(user, Permission.VIEW_ALL_COURTESY_CALL_FEEDBACK):
            return True
        if RBACService.has_permission(user, Permission.VIEW_OWN_COURTESY_CALL_FEEDBACK):
            return False
        raise AuthorizationError("You do not have permission to view courtesy call feedback")

    @staticmethod
    def _caller(user: User) -> Staff:
        staff = user.staff_profile
        if staff is None:
            raise AuthorizationError("Only teachers and staff can record courtesy calls")
        return staff
