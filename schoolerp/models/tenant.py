"""
Tenant models: branches and academic sessions
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso


class Branch(db.Model):
    """A school campus; every operational record belongs to one"""
    __tablename__ = 'branches'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    code = db.Column(db.String(10), unique=True, nullable=False)
    address = db.Column(db.String(255))
    phone = db.Column(db.String(20))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sessions = db.relationship('AcademicSession', backref='branch', lazy=True,
                               order_by='AcademicSession.start_date')

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'address': self.address,
            'phone': self.phone,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
        }


class AcademicSession(db.Model):
    """Academic year of a branch"""
    __tablename__ = 'academic_sessions'
    __table_args__ = (
        db.UniqueConstraint('branch_id', 'name', name='uq_session_branch_name'),
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(30), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_current = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'start_date': iso(self.start_date),
            'end_date': iso(self.end_date),
            'is_current': self.is_current,
        }
