"""
Courtesy call feedback model
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso


class CallerType:
    TEACHER = 'TEACHER'
    HEAD = 'HEAD'
    ALL = (TEACHER, HEAD)


class CourtesyCallFeedback(db.Model):
    """Record of a call made to a student's family"""
    __tablename__ = 'courtesy_call_feedback'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    caller_id = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False, index=True)
    caller_type = db.Column(db.Enum(*CallerType.ALL, name='caller_type'), nullable=False)
    purpose = db.Column(db.String(255))
    feedback = db.Column(db.Text, nullable=False)
    follow_up = db.Column(db.Text)
    is_private = db.Column(db.Boolean, default=False, nullable=False)
    call_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('Student')
    caller = db.relationship('Staff')

    def to_dict(self, hide_private: bool = False):
        data = {
            'id': self.id,
            'student_id': self.student_id,
            'student_name': self.student.full_name if self.student else None,
            'class_name': self.student.class_name if self.student else None,
            'section': self.student.section if self.student else None,
            'branch_id': self.branch_id,
            'caller_id': self.caller_id,
            'caller_name': self.caller.full_name if self.caller else None,
            'caller_type': self.caller_type,
            'purpose': self.purpose,
            'feedback': self.feedback,
            'follow_up': self.follow_up,
            'is_private': self.is_private,
            'call_date': iso(self.call_date),
            'created_at': iso(self.created_at),
        }
        if hide_private and self.is_private:
            data['feedback'] = None
            data['follow_up'] = None
        return data
