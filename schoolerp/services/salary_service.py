"""
Payroll service: salary structures, staff salaries and monthly payments
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from schoolerp.models import (
    db, User, Staff, LeaveApplication, LeaveStatus,
    SalaryStructure, StaffSalary, SalaryPayment, SalaryPaymentStatus
)
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import ConflictError, NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info, money, overlap_days

DAYS_PER_MONTH = Decimal('30')


def calculate_payslip(basic, da_percentage, pf_percentage, esi_percentage, allowances=0,
                      leave_deductions=0, other_deductions=0, other_additions=0) -> Dict[str, Decimal]:
    """
    Monthly pay figures, rounded to two places

    DA, PF and ESI are percentages of basic; the employer contributions
    match the employee ones.
    """
    basic = money(basic)
    da = money(basic * Decimal(str(da_percentage)) / 100)
    pf = money(basic * Decimal(str(pf_percentage)) / 100)
    esi = money(basic * Decimal(str(esi_percentage)) / 100)
    allowances = money(allowances)
    leave_deductions = money(leave_deductions)
    other_deductions = money(other_deductions)
    other_additions = money(other_additions)

    earnings = basic + da + allowances + other_additions
    deductions = pf + esi + leave_deductions + other_deductions
    return {
        'basic_salary': basic,
        'da_amount': da,
        'pf_amount': pf,
        'esi_amount': esi,
        'employer_pf': pf,
        'employer_esi': esi,
        'allowances': allowances,
        'leave_deductions': leave_deductions,
        'other_deductions': other_deductions,
        'other_additions': other_additions,
        'total_earnings': earnings,
        'total_deductions': deductions,
        'net_payable': earnings - deductions,
    }


def leave_deduction(basic, leaves: Iterable[Any], year: int, month: int) -> Decimal:
    """
    Deduction for unpaid leave in a month

    Every rejected application, and every application under an unpaid
    policy, costs basic/30 per day falling inside the month.
    """
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    daily_rate = Decimal(str(basic)) / DAYS_PER_MONTH
    days = 0
    for leave in leaves:
        unpaid = leave.status == LeaveStatus.REJECTED or not leave.policy.is_paid
        if leave.status == LeaveStatus.CANCELLED or not unpaid:
            continue
        days += overlap_days(leave.start_date, leave.end_date, first, last)
    return money(daily_rate * days)


class SalaryService:
    """Salary service class"""

    # Structures

    @staticmethod
    def create_structure(data: Dict[str, Any], user: User) -> SalaryStructure:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        structure = SalaryStructure(branch_id=branch_id, name=data['name'],
                                    description=data.get('description'),
                                    basic_salary=data['basic_salary'],
                                    da_percentage=data.get('da_percentage', 0),
                                    pf_percentage=data.get('pf_percentage', 0),
                                    esi_percentage=data.get('esi_percentage', 0),
                                    is_active=data.get('is_active', True))
        db.session.add(structure)
        db.session.commit()
        log_info(f"Salary structure {structure.name} created")
        return structure

    @staticmethod
    def list_structures(user: User, branch_id: Optional[int] = None) -> List[Dict[str, Any]]:
        query = SalaryStructure.query
        branch_id = TenantService.resolve_branch_id(user, branch_id)
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        return [s.to_dict() for s in query.order_by(SalaryStructure.name).all()]

    @staticmethod
    def update_structure(structure_id: int, data: Dict[str, Any], user: User) -> SalaryStructure:
        structure = TenantService.get_scoped(SalaryStructure, structure_id, user, "Salary structure")
        for key in ('name', 'description', 'basic_salary', 'da_percentage', 'pf_percentage',
                    'esi_percentage', 'is_active'):
            if key in data:
                setattr(structure, key, data[key])
        db.session.commit()
        return structure

    # Staff salaries

    @staticmethod
    def assign_salary(data: Dict[str, Any], user: User) -> StaffSalary:
        """Give a staff member a new salary, closing the active one"""
        staff = TenantService.get_scoped(Staff, data['staff_id'], user, "Staff")
        structure = db.session.get(SalaryStructure, data['structure_id'])
        if structure is None or structure.branch_id != staff.branch_id:
            raise ValidationError("Salary structure not found for this branch")
        if not structure.is_active:
            raise ValidationError("Salary structure is not active")

        SalaryService._close_active(staff.id, data['start_date'])
        salary = StaffSalary(staff_id=staff.id, structure_id=structure.id,
                             custom_basic_salary=data.get('custom_basic_salary'),
                             custom_da_percentage=data.get('custom_da_percentage'),
                             custom_pf_percentage=data.get('custom_pf_percentage'),
                             custom_esi_percentage=data.get('custom_esi_percentage'),
                             additional_allowances=data.get('additional_allowances', 0),
                             start_date=data['start_date'], remarks=data.get('remarks'),
                             is_active=True)
        db.session.add(salary)
        db.session.commit()
        log_info(f"Salary assigned to staff {staff.id} from {salary.start_date}")
        return salary

    @staticmethod
    def get_active_salary(staff_id: int, user: User) -> StaffSalary:
        staff = TenantService.get_scoped(Staff, staff_id, user, "Staff")
        salary = StaffSalary.query.filter_by(staff_id=staff.id, is_active=True).first()
        if salary is None:
            raise NotFoundError("No active salary for this staff member")
        return salary

    @staticmethod
    def salary_history(staff_id: int, user: User) -> List[Dict[str, Any]]:
        staff = TenantService.get_scoped(Staff, staff_id, user, "Staff")
        salaries = StaffSalary.query.filter_by(staff_id=staff.id).order_by(StaffSalary.start_date.desc()).all()
        return [s.to_dict() for s in salaries]

    @staticmethod
    def apply_increment(staff_id: int, data: Dict[str, Any], user: User) -> StaffSalary:
        """Raise basic salary by an amount or a percentage"""
        current = SalaryService.get_active_salary(staff_id, user)
        basic = Decimal(str(current.basic_salary))
        if data.get('amount') is not None:
            new_basic = basic + Decimal(str(data['amount']))
        elif data.get('percentage') is not None:
            new_basic = basic * (1 + Decimal(str(data['percentage'])) / 100)
        else:
            raise ValidationError("Either amount or percentage is required")
        if data['effective_date'] < current.start_date:
            raise ValidationError("Increment cannot take effect before the current salary starts")

        SalaryService._close_active(current.staff_id, data['effective_date'])
        salary = StaffSalary(staff_id=current.staff_id, structure_id=current.structure_id,
                             custom_basic_salary=money(new_basic),
                             custom_da_percentage=current.custom_da_percentage,
                             custom_pf_percentage=current.custom_pf_percentage,
                             custom_esi_percentage=current.custom_esi_percentage,
                             additional_allowances=current.additional_allowances,
                             start_date=data['effective_date'],
                             remarks=data.get('remarks') or f"Increment from {money(basic)}",
                             is_active=True)
        db.session.add(salary)
        db.session.commit()
        log_info(f"Increment for staff {current.staff_id}: {money(basic)} -> {money(new_basic)}")
        return salary

    # Payments

    @staticmethod
    def preview_payment(data: Dict[str, Any], user: User) -> Dict[str, Any]:
        salary = SalaryService.get_active_salary(data['staff_id'], user)
        figures = SalaryService._figures(salary, data)
        return {key: float(value) for key, value in figures.items()}

    @staticmethod
    def create_payment(data: Dict[str, Any], user: User) -> SalaryPayment:
        salary = SalaryService.get_active_salary(data['staff_id'], user)
        month, year = data['month'], data['year']
        if SalaryPayment.query.filter_by(staff_id=salary.staff_id, month=month, year=year).first():
            raise ConflictError(f"Salary for {month:02d}/{year} has already been processed")

        payment = SalaryPayment(staff_salary_id=salary.id, staff_id=salary.staff_id, month=month,
                                year=year, status=SalaryPaymentStatus.PENDING,
                                remarks=data.get('remarks'), created_by_id=user.id,
                                **SalaryService._figures(salary, data))
        db.session.add(payment)
        db.session.commit()
        log_info(f"Salary payment {month:02d}/{year} created for staff {salary.staff_id}: {payment.net_payable}")
        return payment

    @staticmethod
    def update_payment_status(payment_id: int, data: Dict[str, Any], user: User) -> SalaryPayment:
        payment = db.session.get(SalaryPayment, payment_id)
        if payment is None or not TenantService.can_access(user, payment.staff.branch_id):
            raise NotFoundError("Salary payment not found")
        if payment.status == SalaryPaymentStatus.PAID and data['status'] != SalaryPaymentStatus.PAID:
            raise ValidationError("A paid salary cannot change status")
        payment.status = data['status']
        if 'remarks' in data:
            payment.remarks = data['remarks']
        if payment.status == SalaryPaymentStatus.PAID and payment.payment_date is None:
            payment.payment_date = datetime.utcnow()
        db.session.commit()
        log_info(f"Salary payment {payment.id} -> {payment.status}")
        return payment

    @staticmethod
    def list_payments(user: User, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = SalaryPayment.query.join(Staff, SalaryPayment.staff_id == Staff.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        for key in ('staff_id', 'month', 'year', 'status'):
            if filters.get(key):
                query = query.filter(getattr(SalaryPayment, key) == filters[key])
        query = query.order_by(SalaryPayment.year.desc(), SalaryPayment.month.desc())
        return [p.to_dict() for p in query.all()]

    @staticmethod
    def _figures(salary: StaffSalary, data: Dict[str, Any]) -> Dict[str, Decimal]:
        leaves = LeaveApplication.query.filter(
            LeaveApplication.staff_id == salary.staff_id,
            LeaveApplication.start_date <= date(data['year'], data['month'],
                                                calendar.monthrange(data['year'], data['month'])[1]),
            LeaveApplication.end_date >= date(data['year'], data['month'], 1),
        ).all()
        return calculate_payslip(
            salary.basic_salary, salary.da_percentage, salary.pf_percentage, salary.esi_percentage,
            allowances=salary.additional_allowances,
            leave_deductions=leave_deduction(salary.basic_salary, leaves, data['year'], data['month']),
            other_deductions=data.get('other_deductions', 0),
            other_additions=data.get('other_additions', 0),
        )

    @staticmethod
    def _close_active(staff_id: int, end_date: date) -> None:
        for active in StaffSalary.query.filter_by(staff_id=staff_id, is_active=True).all():
            active.is_active = False
            active.end_date = end_date
