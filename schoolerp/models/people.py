"""
Student and staff models
"""

from datetime import datetime, date

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso


class StaffType:
    TEACHER = 'Teacher'
    EMPLOYEE = 'Employee'
    ALL = (TEACHER, EMPLOYEE)


class Student(db.Model):
    """Enrolled student"""
    __tablename__ = 'students'
    __table_args__ = (
        db.UniqueConstraint('branch_id', 'admission_number', name='uq_students_branch_admission'),
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    admission_number = db.Column(db.String(50), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(20))
    class_name = db.Column(db.String(50), index=True)
    section = db.Column(db.String(20))
    roll_number = db.Column(db.String(20))
    guardian_name = db.Column(db.String(200))
    guardian_phone = db.Column(db.String(20))
    guardian_email = db.Column(db.String(255))
    address = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    date_of_admission = db.Column(db.Date, default=date.today)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self):
        """Get full name"""
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'admission_number': self.admission_number,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'date_of_birth': iso(self.date_of_birth),
            'gender': self.gender,
            'class_name': self.class_name,
            'section': self.section,
            'roll_number': self.roll_number,
            'guardian_name': self.guardian_name,
            'guardian_phone': self.guardian_phone,
            'guardian_email': self.guardian_email,
            'address': self.address,
            'is_active': self.is_active,
            'date_of_admission': iso(self.date_of_admission),
        }


class Staff(db.Model):
    """Teacher or non-teaching employee"""
    __tablename__ = 'staff'
    __table_args__ = (
        db.UniqueConstraint('branch_id', 'employee_code', name='uq_staff_branch_code'),
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=True)
    staff_type = db.Column(db.Enum(*StaffType.ALL, name='staff_type'), nullable=False)
    employee_code = db.Column(db.String(30), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(20))
    designation = db.Column(db.String(100))
    department = db.Column(db.String(100))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    join_date = db.Column(db.Date, default=date.today)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('staff_profile', uselist=False))

    @property
    def full_name(self):
        """Get full name"""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_teacher(self):
        return self.staff_type == StaffType.TEACHER

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'user_id': self.user_id,
            'staff_type': self.staff_type,
            'employee_code': self.employee_code,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'email': self.email,
            'phone': self.phone,
            'designation': self.designation,
            'department': self.department,
            'is_active': self.is_active,
            'join_date': iso(self.join_date),
        }
