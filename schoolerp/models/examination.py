"""
Grade scales, assessment schemas and scores
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import as_float, iso


class GradeScale(db.Model):
    __tablename__ = 'grade_scales'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    is_default = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    ranges = db.relationship('GradeRange', backref='scale', lazy=True,
                             cascade='all, delete-orphan',
                             order_by='GradeRange.min_percentage.desc()')

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'description': self.description,
            'is_default': self.is_default,
            'ranges': [r.to_dict() for r in self.ranges],
        }


class GradeRange(db.Model):
    __tablename__ = 'grade_ranges'

    id = db.Column(db.Integer, primary_key=True)
    scale_id = db.Column(db.Integer, db.ForeignKey('grade_scales.id'), nullable=False)
    grade = db.Column(db.String(10), nullable=False)
    min_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    max_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    grade_point = db.Column(db.Numeric(4, 2))
    description = db.Column(db.String(100))

    def to_dict(self):
        return {
            'id': self.id,
            'grade': self.grade,
            'min_percentage': as_float(self.min_percentage),
            'max_percentage': as_float(self.max_percentage),
            'grade_point': as_float(self.grade_point),
            'description': self.description,
        }


class AssessmentSchema(db.Model):
    """Marks scheme of one subject/term for a class"""
    __tablename__ = 'assessment_schemas'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    class_name = db.Column(db.String(50), nullable=False)
    subject = db.Column(db.String(100), nullable=False)
    term = db.Column(db.String(50))
    total_marks = db.Column(db.Numeric(7, 2), nullable=False)
    grade_scale_id = db.Column(db.Integer, db.ForeignKey('grade_scales.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    components = db.relationship('AssessmentComponent', backref='schema', lazy=True,
                                 cascade='all, delete-orphan',
                                 order_by='AssessmentComponent.id')
    grade_scale = db.relationship('GradeScale')

    def to_dict(self):
        return {
            'id': self.id,
            'branch_id': self.branch_id,
            'name': self.name,
            'class_name': self.class_name,
            'subject': self.subject,
            'term': self.term,
            'total_marks': as_float(self.total_marks),
            'grade_scale_id': self.grade_scale_id,
            'is_active': self.is_active,
            'components': [c.to_dict() for c in self.components],
            'created_at': iso(self.created_at),
        }


class AssessmentComponent(db.Model):
    __tablename__ = 'assessment_components'

    id = db.Column(db.Integer, primary_key=True)
    schema_id = db.Column(db.Integer, db.ForeignKey('assessment_schemas.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    raw_max_score = db.Column(db.Numeric(7, 2), nullable=False)
    reduced_score = db.Column(db.Numeric(7, 2), nullable=False)
    weightage = db.Column(db.Numeric(7, 2), nullable=False, default=1)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'raw_max_score': as_float(self.raw_max_score),
            'reduced_score': as_float(self.reduced_score),
            'weightage': as_float(self.weightage),
        }


class AssessmentScore(db.Model):
    __tablename__ = 'assessment_scores'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'component_id', name='uq_score_student_component'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey('assessment_components.id'), nullable=False)
    raw_score = db.Column(db.Numeric(7, 2), nullable=False)
    entered_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    component = db.relationship('AssessmentComponent',
                                backref=db.backref('scores', lazy=True, cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'component_id': self.component_id,
            'raw_score': as_float(self.raw_score),
            'entered_by_id': self.entered_by_id,
            'updated_at': iso(self.updated_at),
        }
