"""
Student and staff attendance models
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso


class AttendanceStatus:
    PRESENT = 'PRESENT'
    ABSENT = 'ABSENT'
    LATE = 'LATE'
    HALF_DAY = 'HALF_DAY'
    EXCUSED = 'EXCUSED'
    ALL = (PRESENT, ABSENT, LATE, HALF_DAY, EXCUSED)


class StudentAttendance(db.Model):
    """One attendance mark per student per day"""
    __tablename__ = 'student_attendance'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'date', name='uq_student_attendance_day'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.Enum(*AttendanceStatus.ALL, name='attendance_status'), nullable=False)
    reason = db.Column(db.String(255))
    notes = db.Column(db.Text)
    marked_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('Student')

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'date': iso(self.date),
            'status': self.status,
            'reason': self.reason,
            'notes': self.notes,
            'marked_by_id': self.marked_by_id,
        }


class AttendanceLocation(db.Model):
    """Geofenced check-in point for staff"""
    __tablename__ = 'attendance_locations'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    radius = db.Column(db.Float, nullable=False, default=100.0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'radius': self.radius,
            'is_active': self.is_active,
        }


class StaffAttendance(db.Model):
    __tablename__ = 'staff_attendance'
    __table_args__ = (
        db.UniqueConstraint('staff_id', 'date', name='uq_staff_attendance_day'),
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey('attendance_locations.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    check_in_time = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)
    distance = db.Column(db.Float)

    staff = db.relationship('Staff')
    location = db.relationship('AttendanceLocation',
                               backref=db.backref('records', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'staff_id': self.staff_id,
            'location_id': self.location_id,
            'location_name': self.location.name if self.location else None,
            'date': iso(self.date),
            'check_in_time': iso(self.check_in_time),
            'distance': round(self.distance, 2) if self.distance is not None else None,
        }
