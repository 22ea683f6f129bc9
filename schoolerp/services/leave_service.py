"""
Leave service: policies, balances and applications
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from schoolerp.models import (
    db, User, Staff, LeavePolicy, LeaveBalance, LeaveApplication, LeaveStatus
)
from schoolerp.services.rbac_service import RBACService
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import (
    AuthorizationError, ConflictError, InsufficientBalanceError, NotFoundError, ValidationError
)
from schoolerp.utils.helpers import inclusive_days, log_error, log_info, paginate_query
from schoolerp.utils.permissions import Permission
from schoolerp.utils.validators import validate_date_range


class LeaveService:
    """Leave policies, balance ledger and the application workflow"""

    # Policies

    @staticmethod
    def create_policy(data: Dict[str, Any], user: User) -> LeavePolicy:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        if LeavePolicy.query.filter_by(branch_id=branch_id, name=data['name']).first():
            raise ConflictError(f"Leave policy '{data['name']}' already exists")
        policy = LeavePolicy(branch_id=branch_id, name=data['name'], description=data.get('description'),
                             max_days_per_year=data['max_days_per_year'], is_paid=data.get('is_paid', True),
                             applicable_roles=sorted(set(data['applicable_roles'])))
        db.session.add(policy)
        db.session.commit()
        log_info(f"Leave policy {policy.name} created for branch {branch_id}")
        return policy

    @staticmethod
    def list_policies(user: User, branch_id: Optional[int] = None) -> List[Dict[str, Any]]:
        query = LeavePolicy.query
        branch_id = TenantService.resolve_branch_id(user, branch_id)
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        return [p.to_dict() for p in query.order_by(LeavePolicy.name).all()]

    @staticmethod
    def update_policy(policy_id: int, data: Dict[str, Any], user: User) -> LeavePolicy:
        """
        Update a policy

        With adjust_existing_balances, a change of max_days_per_year is carried
        into this year's balances: total becomes the new maximum and remaining
        moves by the difference, never below zero.
        """
        policy = TenantService.get_scoped(LeavePolicy, policy_id, user, "Leave policy")
        name = data.get('name')
        if name and name != policy.name and LeavePolicy.query.filter_by(
                branch_id=policy.branch_id, name=name).first():
            raise ConflictError(f"Leave policy '{name}' already exists")

        old_max = policy.max_days_per_year
        for key in ('name', 'description', 'max_days_per_year', 'is_paid'):
            if key in data:
                setattr(policy, key, data[key])
        if 'applicable_roles' in data:
            policy.applicable_roles = sorted(set(data['applicable_roles']))

        adjusted = 0
        if data.get('adjust_existing_balances') and policy.max_days_per_year != old_max:
            delta = policy.max_days_per_year - old_max
            balances = LeaveBalance.query.filter_by(policy_id=policy.id, year=date.today().year).all()
            for balance in balances:
                balance.total_days = policy.max_days_per_year
                balance.remaining_days = max(balance.remaining_days + delta, 0)
                adjusted += 1

        db.session.commit()
        log_info(f"Leave policy {policy.name} updated ({adjusted} balances adjusted)")
        return policy

    @staticmethod
    def delete_policy(policy_id: int, user: User, force: bool = False) -> None:
        policy = TenantService.get_scoped(LeavePolicy, policy_id, user, "Leave policy")
        active = LeaveApplication.query.filter(
            LeaveApplication.policy_id == policy.id,
            LeaveApplication.status.in_(LeaveStatus.ACTIVE),
        ).count()
        if active and not force:
            raise ConflictError(f"Leave policy has {active} pending or approved applications")
        db.session.delete(policy)
        db.session.commit()
        log_info(f"Leave policy {policy.name} deleted")

    # Balances

    @staticmethod
    def initialize_policy_balances(policy_id: int, user: User, year: Optional[int] = None) -> Dict[str, int]:
        """Create balances of a policy for every applicable active staff member"""
        policy = TenantService.get_scoped(LeavePolicy, policy_id, user, "Leave policy")
        year = year or date.today().year
        staff_members = Staff.query.filter(
            Staff.branch_id == policy.branch_id,
            Staff.is_active.is_(True),
            Staff.staff_type.in_(policy.applicable_roles or []),
        ).all()

        initialized = skipped = 0
        for staff in staff_members:
            if LeaveService._find_balance(staff.id, policy.id, year):
                skipped += 1
                continue
            db.session.add(LeaveService._new_balance(staff, policy, year))
            initialized += 1
        db.session.commit()
        log_info(f"Leave policy {policy.name}: {initialized} balances initialized for {year}")
        return {'initialized': initialized, 'skipped': skipped}

    @staticmethod
    def initialize_staff_balances(staff_id: int, user: User, year: Optional[int] = None) -> Dict[str, int]:
        """Create balances of a staff member for every applicable policy of the branch"""
        staff = TenantService.get_scoped(Staff, staff_id, user, "Staff")
        year = year or date.today().year

        initialized = skipped = 0
        for policy in LeavePolicy.query.filter_by(branch_id=staff.branch_id).all():
            if not policy.applies_to(staff.staff_type):
                continue
            if LeaveService._find_balance(staff.id, policy.id, year):
                skipped += 1
                continue
            db.session.add(LeaveService._new_balance(staff, policy, year))
            initialized += 1
        db.session.commit()
        return {'initialized': initialized, 'skipped': skipped}

    @staticmethod
    def get_staff_balances(staff_id: int, user: User, year: Optional[int] = None) -> List[Dict[str, Any]]:
        staff = LeaveService._get_staff_for(staff_id, user)
        year = year or date.today().year
        balances = LeaveBalance.query.filter_by(staff_id=staff.id, year=year).all()
        return [b.to_dict() for b in balances]

    # Applications

    @staticmethod
    def apply(data: Dict[str, Any], user: User) -> LeaveApplication:
        """
        File a leave application

        Raises:
            ValidationError: Bad dates, reason or policy
            ConflictError: Overlaps a pending or approved application
            InsufficientBalanceError: Not enough days left
        """
        staff = LeaveService._applicant(data.get('staff_id'), user)
        start, end = data['start_date'], data['end_date']
        validate_date_range(start, end)
        if start < date.today():
            raise ValidationError("Leave cannot start in the past")
        reason = (data.get('reason') or '').strip()
        if len(reason) < 10:
            raise ValidationError("Reason must be at least 10 characters")

        policy = db.session.get(LeavePolicy, data['policy_id'])
        if policy is None or policy.branch_id != staff.branch_id:
            raise ValidationError("Leave policy not found for this branch")
        if not policy.applies_to(staff.staff_type):
            raise ValidationError(f"{policy.name} does not apply to {staff.staff_type} staff")

        overlapping = LeaveApplication.query.filter(
            LeaveApplication.staff_id == staff.id,
            LeaveApplication.status.in_(LeaveStatus.ACTIVE),
            LeaveApplication.start_date <= end,
            LeaveApplication.end_date >= start,
        ).first()
        if overlapping:
            raise ConflictError(
                f"Overlaps leave from {overlapping.start_date.isoformat()} to {overlapping.end_date.isoformat()}")

        balance = LeaveService._find_balance(staff.id, policy.id, start.year)
        if balance is None:
            balance = LeaveService._new_balance(staff, policy, start.year)
            db.session.add(balance)
        days = inclusive_days(start, end)
        if days > balance.remaining_days:
            db.session.rollback()
            raise InsufficientBalanceError(
                f"Insufficient leave balance: requested {days} days, {balance.remaining_days} remaining")

        application = LeaveApplication(staff_id=staff.id, policy_id=policy.id, start_date=start,
                                       end_date=end, reason=reason, status=LeaveStatus.PENDING)
        db.session.add(application)
        db.session.commit()
        log_info(f"Leave application {application.id} filed by staff {staff.id} for {days} days")
        return application

    @staticmethod
    def decide(application_id: int, status: str, user: User, comments: Optional[str] = None) -> LeaveApplication:
        """Approve or reject a pending application; approval debits the balance"""
        application = LeaveService._get_application(application_id, user)
        if application.status != LeaveStatus.PENDING:
            raise ValidationError(f"Only pending applications can be decided (current: {application.status})")
        try:
            LeaveService._apply_decision(application, status, user, comments)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            log_error(f"Leave decision for application {application_id} failed", e)
            raise
        log_info(f"Leave application {application.id} {status}")
        return application

    @staticmethod
    def bulk_decide(application_ids: List[int], status: str, user: User,
                    comments: Optional[str] = None) -> List[LeaveApplication]:
        """Decide several pending applications in one transaction"""
        wanted = sorted(set(application_ids))
        query = LeaveApplication.query.join(Staff, LeaveApplication.staff_id == Staff.id).filter(
            LeaveApplication.id.in_(wanted),
            LeaveApplication.status == LeaveStatus.PENDING,
        )
        branch_id = TenantService.resolve_branch_id(user)
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        applications = query.with_for_update().all()

        if not applications:
            raise NotFoundError("No pending leave applications found")
        found = {a.id for a in applications}
        if len(found) != len(wanted):
            missing = [i for i in wanted if i not in found]
            raise ValidationError("Some applications were not found or are not pending",
                                  errors={'application_ids': missing})

        try:
            for application in applications:
                LeaveService._apply_decision(application, status, user, comments)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            log_error("Bulk leave decision failed", e)
            raise
        log_info(f"{len(applications)} leave applications {status}")
        return applications

    @staticmethod
    def cancel(application_id: int, user: User) -> LeaveApplication:
        application = LeaveService._get_application(application_id, user)
        own = user.staff_profile is not None and user.staff_profile.id == application.staff_id
        if not own and not RBACService.has_permission(user, Permission.MANAGE_LEAVE_APPLICATIONS):
            raise AuthorizationError("You can only cancel your own leave applications")

        if application.status == LeaveStatus.APPROVED:
            if application.start_date <= date.today():
                raise ValidationError("Leave that has already started cannot be cancelled")
            balance = LeaveService._find_balance(application.staff_id, application.policy_id,
                                                 application.start_date.year, lock=True)
            if balance is not None:
                balance.used_days = max(balance.used_days - application.days, 0)
                balance.remaining_days = balance.total_days - balance.used_days
        elif application.status != LeaveStatus.PENDING:
            raise ValidationError(f"Cannot cancel a {application.status.lower()} application")

        application.status = LeaveStatus.CANCELLED
        db.session.commit()
        log_info(f"Leave application {application.id} cancelled")
        return application

    @staticmethod
    def list_applications(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = LeaveApplication.query.join(Staff, LeaveApplication.staff_id == Staff.id)
        if not RBACService.has_any_permission(user, (Permission.VIEW_LEAVES,
                                                     Permission.MANAGE_LEAVE_APPLICATIONS)):
            if user.staff_profile is None:
                raise AuthorizationError("You do not have permission to view leave applications")
            query = query.filter(LeaveApplication.staff_id == user.staff_profile.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        for key, column in (('staff_id', LeaveApplication.staff_id), ('policy_id', LeaveApplication.policy_id),
                            ('status', LeaveApplication.status)):
            if filters.get(key):
                query = query.filter(column == filters[key])
        if filters.get('from_date'):
            query = query.filter(LeaveApplication.end_date >= filters['from_date'])
        if filters.get('to_date'):
            query = query.filter(LeaveApplication.start_date <= filters['to_date'])
        query = query.order_by(LeaveApplication.created_at.desc())
        return paginate_query(query, page, limit)

    @staticmethod
    def analytics(user: User, branch_id: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        year = year or date.today().year
        branch_id = TenantService.resolve_branch_id(user, branch_id)
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)

        applications = LeaveApplication.query.join(Staff, LeaveApplication.staff_id == Staff.id).filter(
            LeaveApplication.start_date >= year_start,
            LeaveApplication.start_date <= year_end,
        )
        balances = LeaveBalance.query.join(Staff, LeaveBalance.staff_id == Staff.id).filter(
            LeaveBalance.year == year
        )
        policies = LeavePolicy.query
        if branch_id is not None:
            applications = applications.filter(Staff.branch_id == branch_id)
            balances = balances.filter(Staff.branch_id == branch_id)
            policies = policies.filter(LeavePolicy.branch_id == branch_id)

        by_status = {status: 0 for status in LeaveStatus.ALL}
        for status, count in applications.with_entities(
                LeaveApplication.status, func.count(LeaveApplication.id)).group_by(LeaveApplication.status):
            by_status[status] = count

        usage = []
        for policy in policies.order_by(LeavePolicy.name).all():
            policy_apps = applications.filter(LeaveApplication.policy_id == policy.id).all()
            usage.append({
                'policy_id': policy.id,
                'policy_name': policy.name,
                'applications': len(policy_apps),
                'approved_days': sum(a.days for a in policy_apps if a.status == LeaveStatus.APPROVED),
            })

        total, used, remaining = balances.with_entities(
            func.coalesce(func.sum(LeaveBalance.total_days), 0),
            func.coalesce(func.sum(LeaveBalance.used_days), 0),
            func.coalesce(func.sum(LeaveBalance.remaining_days), 0),
        ).one()

        return {
            'year': year,
            'by_status': by_status,
            'by_policy': usage,
            'total_days': int(total),
            'used_days': int(used),
            'remaining_days': int(remaining),
            'utilization_rate': round(int(used) / int(total) * 100, 2) if total else 0,
        }

    # Internals

    @staticmethod
    def _apply_decision(application: LeaveApplication, status: str, user: User,
                        comments: Optional[str]) -> None:
        if status == LeaveStatus.APPROVED:
            balance = LeaveService._find_balance(application.staff_id, application.policy_id,
                                                 application.start_date.year, lock=True)
            if balance is None:
                balance = LeaveService._new_balance(application.staff, application.policy,
                                                    application.start_date.year)
                db.session.add(balance)
            days = application.days
            if balance.remaining_days < days:
                raise InsufficientBalanceError(
                    f"Insufficient leave balance for application {application.id}: "
                    f"requested {days} days, {balance.remaining_days} remaining")
            balance.used_days += days
            balance.remaining_days -= days
        elif status != LeaveStatus.REJECTED:
            raise ValidationError("Decision must be APPROVED or REJECTED")

        application.status = status
        application.comments = comments
        application.approved_by_id = user.id
        application.decided_at = datetime.utcnow()

    @staticmethod
    def _find_balance(staff_id: int, policy_id: int, year: int, lock: bool = False) -> Optional[LeaveBalance]:
        query = LeaveBalance.query.filter_by(staff_id=staff_id, policy_id=policy_id, year=year)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def _new_balance(staff: Staff, policy: LeavePolicy, year: int) -> LeaveBalance:
        return LeaveBalance(staff_id=staff.id, policy_id=policy.id, year=year,
                            total_days=policy.max_days_per_year, used_days=0,
                            remaining_days=policy.max_days_per_year)

    @staticmethod
    def _applicant(staff_id: Optional[int], user: User) -> Staff:
        """Staff member an application is filed for"""
        own = user.staff_profile
        if staff_id is None or (own is not None and own.id == staff_id):
            if own is None:
                raise ValidationError("Your account is not linked to a staff record")
            return own
        if not RBACService.has_permission(user, Permission.MANAGE_LEAVE_APPLICATIONS):
            raise AuthorizationError("You can only apply for leave for yourself")
        return TenantService.get_scoped(Staff, staff_id, user, "Staff")

    @staticmethod
    def _get_staff_for(staff_id: int, user: User) -> Staff:
        own = user.staff_profile
        if own is not None and own.id == staff_id:
            return own
        RBACService.require_permission(user, Permission.VIEW_LEAVES, Permission.MANAGE_LEAVE_APPLICATIONS)
        return TenantService.get_scoped(Staff, staff_id, user, "Staff")

    @staticmethod
    def _get_application(application_id: int, user: User) -> LeaveApplication:
        application = db.session.get(LeaveApplication, application_id)
        if application is None or not TenantService.can_access(user, application.staff.branch_id):
            raise NotFoundError("Leave application not found")
        return application
