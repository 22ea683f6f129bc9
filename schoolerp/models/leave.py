"""
Leave policies, balances and applications
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso, inclusive_days


class LeaveStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    CANCELLED = 'CANCELLED'
    ALL = (PENDING, APPROVED, REJECTED, CANCELLED)
    ACTIVE = (PENDING, APPROVED)


class LeavePolicy(db.Model):
    """Leave type with a yearly allowance for the listed staff types"""
    __tablename__ = 'leave_policies'
    __table_args__ = (
        db.UniqueConstraint('branch_id', 'name', name='uq_leave_policy_branch_name'),
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    max_days_per_year = db.Column(db.Integer, nullable=False)
    is_paid = db.Column(db.Boolean, default=True, nullable=False)
    applicable_roles = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    balances = db.relationship('LeaveBalance', backref='policy', lazy=True,
                               cascade='all, delete-orphan')
    applications = db.relationship('LeaveApplication', backref='policy', lazy=True,
                                   cascade='all, delete-orphan')

    def applies_to(self, staff_type: str) -> bool:
        return staff_type in (self.applicable_roles or [])

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'description': self.description,
            'max_days_per_year': self.max_days_per_year,
            'is_paid': self.is_paid,
            'applicable_roles': list(self.applicable_roles or []),
            'created_at': iso(self.created_at),
        }


class LeaveBalance(db.Model):
    __tablename__ = 'leave_balances'
    __table_args__ = (
        db.UniqueConstraint('staff_id', 'policy_id', 'year', name='uq_leave_balance'),
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    policy_id = db.Column(db.Integer, db.ForeignKey('leave_policies.id'), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    total_days = db.Column(db.Integer, nullable=False)
    used_days = db.Column(db.Integer, default=0, nullable=False)
    remaining_days = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    staff = db.relationship('Staff')

    def to_dict(self):
        return {
            'id': self.id,
            'staff_id': self.staff_id,
            'policy_id': self.policy_id,
            'policy_name': self.policy.name if self.policy else None,
            'year': self.year,
            'total_days': self.total_days,
            'used_days': self.used_days,
            'remaining_days': self.remaining_days,
        }


class LeaveApplication(db.Model):
    __tablename__ = 'leave_applications'

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    policy_id = db.Column(db.Integer, db.ForeignKey('leave_policies.id'), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(*LeaveStatus.ALL, name='leave_status'),
                       default=LeaveStatus.PENDING, nullable=False, index=True)
    comments = db.Column(db.Text)
    approved_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    decided_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    staff = db.relationship('Staff')

    @property
    def days(self) -> int:
        return inclusive_days(self.start_date, self.end_date)

    def to_dict(self):
        return {
            'id': self.id,
            'staff_id': self.staff_id,
            'staff_name': self.staff.full_name if self.staff else None,
            'policy_id': self.policy_id,
            'policy_name': self.policy.name if self.policy else None,
            'start_date': iso(self.start_date),
            'end_date': iso(self.end_date),
            'days': self.days,
            'reason': self.reason,
            'status': self.status,
            'comments': self.comments,
            'approved_by_id': self.approved_by_id,
            'decided_at': iso(self.decided_at),
            'created_at': iso(self.created_at),
        }
