"""
Payroll models
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import as_float, iso


class SalaryPaymentStatus:
    PENDING = 'PENDING'
    PAID = 'PAID'
    CANCELLED = 'CANCELLED'
    ALL = (PENDING, PAID, CANCELLED)


class SalaryStructure(db.Model):
    """Pay grade: basic salary and statutory percentages"""
    __tablename__ = 'salary_structures'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    basic_salary = db.Column(db.Numeric(12, 2), nullable=False)
    da_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    pf_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    esi_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'description': self.description,
            'basic_salary': as_float(self.basic_salary),
            'da_percentage': as_float(self.da_percentage),
            'pf_percentage': as_float(self.pf_percentage),
            'esi_percentage': as_float(self.esi_percentage),
            'is_active': self.is_active,
        }


class StaffSalary(db.Model):
    """Salary assignment of a staff member; one active at a time"""
    __tablename__ = 'staff_salaries'

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    structure_id = db.Column(db.Integer, db.ForeignKey('salary_structures.id'), nullable=False)
    custom_basic_salary = db.Column(db.Numeric(12, 2))
    custom_da_percentage = db.Column(db.Numeric(5, 2))
    custom_pf_percentage = db.Column(db.Numeric(5, 2))
    custom_esi_percentage = db.Column(db.Numeric(5, 2))
    additional_allowances = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    remarks = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    staff = db.relationship('Staff')
    structure = db.relationship('SalaryStructure')

    @property
    def basic_salary(self):
        if self.custom_basic_salary is not None:
            return self.custom_basic_salary
        return self.structure.basic_salary

    @property
    def da_percentage(self):
        if self.custom_da_percentage is not None:
            return self.custom_da_percentage
        return self.structure.da_percentage

    @property
    def pf_percentage(self):
        if self.custom_pf_percentage is not None:
            return self.custom_pf_percentage
        return self.structure.pf_percentage

    @property
    def esi_percentage(self):
        if self.custom_esi_percentage is not None:
            return self.custom_esi_percentage
        return self.structure.esi_percentage

    def to_dict(self):
        return {
            'id': self.id,
            'staff_id': self.staff_id,
            'staff_name': self.staff.full_name if self.staff else None,
            'structure_id': self.structure_id,
            'structure_name': self.structure.name if self.structure else None,
            'basic_salary': as_float(self.basic_salary),
            'da_percentage': as_float(self.da_percentage),
            'pf_percentage': as_float(self.pf_percentage),
            'esi_percentage': as_float(self.esi_percentage),
            'additional_allowances': as_float(self.additional_allowances),
            'start_date': iso(self.start_date),
            'end_date': iso(self.end_date),
            'is_active': self.is_active,
            'remarks': self.remarks,
        }


class SalaryPayment(db.Model):
    """Monthly payslip"""
    __tablename__ = 'salary_payments'
    __table_args__ = (
        db.UniqueConstraint('staff_salary_id', 'month', 'year', name='uq_salary_payment_month'),
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_salary_id = db.Column(db.Integer, db.ForeignKey('staff_salaries.id'), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    basic_salary = db.Column(db.Numeric(12, 2), nullable=False)
    da_amount = db.Column(db.Numeric(12, 2), nullable=False)
    pf_amount = db.Column(db.Numeric(12, 2), nullable=False)
    esi_amount = db.Column(db.Numeric(12, 2), nullable=False)
    employer_pf = db.Column(db.Numeric(12, 2), nullable=False)
    employer_esi = db.Column(db.Numeric(12, 2), nullable=False)
    allowances = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    leave_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_additions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_earnings = db.Column(db.Numeric(12, 2), nullable=False)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False)
    net_payable = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.Enum(*SalaryPaymentStatus.ALL, name='salary_payment_status'),
                       default=SalaryPaymentStatus.PENDING, nullable=False)
    payment_date = db.Column(db.DateTime)
    remarks = db.Column(db.Text)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    staff_salary = db.relationship('StaffSalary')
    staff = db.relationship('Staff')

    def to_dict(self):
        return {
            'id': self.id,
            'staff_salary_id': self.staff_salary_id,
            'staff_id': self.staff_id,
            'staff_name': self.staff.full_name if self.staff else None,
            'month': self.month,
            'year': self.year,
            'basic_salary': as_float(self.basic_salary),
            'da_amount': as_float(self.da_amount),
            'pf_amount': as_float(self.pf_amount),
            'esi_amount': as_float(self.esi_amount),
            'employer_pf': as_float(self.employer_pf),
            'employer_esi': as_float(self.employer_esi),
            'allowances': as_float(self.allowances),
            'leave_deductions': as_float(self.leave_deductions),
            'other_deductions': as_float(self.other_deductions),
            'other_additions': as_float(self.other_additions),
            'total_earnings': as_float(self.total_earnings),
            'total_deductions': as_float(self.total_deductions),
            'net_payable': as_float(self.net_payable),
            'status': self.status,
            'payment_date': iso(self.payment_date),
            'remarks': self.remarks,
        }
