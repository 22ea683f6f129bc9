"""
Admissions funnel models: leads, applications, assessments, offers and payments
"""

from datetime import datetime

from schoolerp.models.database import db
from schoolerp.utils.helpers import iso, as_float


class AdmissionStatus:
    NEW = 'NEW'
    CONTACTED = 'CONTACTED'
    ENGAGED = 'ENGAGED'
    TOUR_SCHEDULED = 'TOUR_SCHEDULED'
    TOUR_COMPLETED = 'TOUR_COMPLETED'
    APPLICATION_SENT = 'APPLICATION_SENT'
    APPLICATION_RECEIVED = 'APPLICATION_RECEIVED'
    FEE_PAID = 'FEE_PAID'
    ASSESSMENT_SCHEDULED = 'ASSESSMENT_SCHEDULED'
    INTERVIEW_SCHEDULED = 'INTERVIEW_SCHEDULED'
    ASSESSMENT_COMPLETED = 'ASSESSMENT_COMPLETED'
    INTERVIEW_COMPLETED = 'INTERVIEW_COMPLETED'
    DECISION_PENDING = 'DECISION_PENDING'
    WAITLISTED = 'WAITLISTED'
    OFFERED = 'OFFERED'
    ACCEPTED = 'ACCEPTED'
    ENROLLED = 'ENROLLED'
    REJECTED = 'REJECTED'
    CLOSED_LOST = 'CLOSED_LOST'
    ARCHIVED = 'ARCHIVED'

    ALL = (
        NEW, CONTACTED, ENGAGED, TOUR_SCHEDULED, TOUR_COMPLETED,
        APPLICATION_SENT, APPLICATION_RECEIVED, FEE_PAID,
        ASSESSMENT_SCHEDULED, INTERVIEW_SCHEDULED, ASSESSMENT_COMPLETED, INTERVIEW_COMPLETED,
        DECISION_PENDING, WAITLISTED, OFFERED, ACCEPTED, ENROLLED,
        REJECTED, CLOSED_LOST, ARCHIVED,
    )


class ApplicationStatus:
    SUBMITTED = 'SUBMITTED'
    IN_REVIEW = 'IN_REVIEW'
    ACCEPTED = 'ACCEPTED'
    REJECTED = 'REJECTED'
    WAITLISTED = 'WAITLISTED'
    ENROLLED = 'ENROLLED'
    WITHDRAWN = 'WITHDRAWN'
    ALL = (SUBMITTED, IN_REVIEW, ACCEPTED, REJECTED, WAITLISTED, ENROLLED, WITHDRAWN)
    OPEN = (SUBMITTED, IN_REVIEW, WAITLISTED)


class StageStatus:
    PENDING = 'PENDING'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    SKIPPED = 'SKIPPED'
    ALL = (PENDING, IN_PROGRESS, COMPLETED, SKIPPED)


class RequirementStatus:
    PENDING = 'PENDING'
    SUBMITTED = 'SUBMITTED'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    ALL = (PENDING, SUBMITTED, APPROVED, REJECTED)


class FollowUpStatus:
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    ALL = (PENDING, COMPLETED, CANCELLED)


class AssessmentType:
    EXAM = 'EXAM'
    INTERVIEW = 'INTERVIEW'
    PLACEMENT_TEST = 'PLACEMENT_TEST'
    ALL = (EXAM, INTERVIEW, PLACEMENT_TEST)


class AssessmentStatus:
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    MISSED = 'MISSED'
    RESCHEDULED = 'RESCHEDULED'
    CANCELLED = 'CANCELLED'
    ALL = (SCHEDULED, COMPLETED, MISSED, RESCHEDULED, CANCELLED)


class AssessmentResult:
    PASS = 'PASS'
    FAIL = 'FAIL'
    CONDITIONAL = 'CONDITIONAL'
    ALL = (PASS, FAIL, CONDITIONAL)


class OfferStatus:
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    DECLINED = 'DECLINED'
    EXPIRED = 'EXPIRED'
    ALL = (PENDING, ACCEPTED, DECLINED, EXPIRED)


class PaymentMethod:
    ALL = ('ONLINE', 'POS', 'BANK_TRANSFER', 'CASH', 'CHECK')


class PaymentStatus:
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'
    ALL = (PENDING, COMPLETED, FAILED, REFUNDED)


class PaymentType:
    REGISTRATION = 'REGISTRATION'
    ADMISSION_CONFIRMATION = 'ADMISSION_CONFIRMATION'
    TUITION = 'TUITION'
    MISCELLANEOUS = 'MISCELLANEOUS'
    ALL = (REGISTRATION, ADMISSION_CONFIRMATION, TUITION, MISCELLANEOUS)


class RegistrationSource:
    ONLINE = 'ONLINE'
    OFFLINE = 'OFFLINE'


class LeadSource(db.Model):
    """Where a lead came from (walk-in, website, referral...)"""
    __tablename__ = 'lead_sources'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_active': self.is_active,
        }


class AdmissionLead(db.Model):
    """Prospective student moving through the admissions funnel"""
    __tablename__ = 'admission_leads'

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('academic_sessions.id'), nullable=True, index=True)
    registration_number = db.Column(db.String(80), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    birth_date = db.Column(db.Date)
    gender = db.Column(db.String(20))
    applied_class = db.Column(db.String(50), nullable=False)
    parent_name = db.Column(db.String(200), nullable=False)
    parent_phone = db.Column(db.String(20), nullable=False)
    parent_email = db.Column(db.String(255))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    country = db.Column(db.String(100))
    previous_school = db.Column(db.String(200))
    source_id = db.Column(db.Integer, db.ForeignKey('lead_sources.id'), nullable=True)
    status = db.Column(db.Enum(*AdmissionStatus.ALL, name='admission_status'),
                       default=AdmissionStatus.NEW, nullable=False, index=True)
    notes = db.Column(db.Text)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    registration_source = db.Column(db.String(10), default=RegistrationSource.ONLINE, nullable=False)
    registered_by_name = db.Column(db.String(200))
    contact_method = db.Column(db.String(20))
    last_contact_date = db.Column(db.DateTime)
    next_follow_up_date = db.Column(db.Date)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    branch = db.relationship('Branch')
    session = db.relationship('AcademicSession')
    source = db.relationship('LeadSource')
    assigned_to = db.relationship('User')
    student = db.relationship('Student')
    interactions = db.relationship('LeadInteraction', backref='lead', lazy=True,
                                   cascade='all, delete-orphan',
                                   order_by='LeadInteraction.occurred_at.desc()')
    follow_ups = db.relationship('FollowUp', backref='lead', lazy=True,
                                 cascade='all, delete-orphan',
                                 order_by='FollowUp.scheduled_date.desc()')
    application = db.relationship('AdmissionApplication', backref='lead', uselist=False,
                                  cascade='all, delete-orphan')
    assessments = db.relationship('Assessment', backref='lead', lazy=True,
                                  cascade='all, delete-orphan',
                                  order_by='Assessment.scheduled_date')
    offer = db.relationship('AdmissionOffer', backref='lead', uselist=False,
                            cascade='all, delete-orphan')
    payments = db.relationship('AdmissionPayment', backref='lead', lazy=True,
                               cascade='all, delete-orphan',
                               order_by='AdmissionPayment.payment_date.desc()')

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self, detail: bool = False):
        """Convert to dictionary; detail adds the related workflow records"""
        data = {
            'id': self.id,
            'branch_id': self.branch_id,
            'session_id': self.session_id,
            'registration_number': self.registration_number,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'birth_date': iso(self.birth_date),
            'gender': self.gender,
            'applied_class': self.applied_class,
            'parent_name': self.parent_name,
            'parent_phone': self.parent_phone,
            'parent_email': self.parent_email,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'country': self.country,
            'previous_school': self.previous_school,
            'source': self.source.name if self.source else None,
            'status': self.status,
            'notes': self.notes,
            'assigned_to_id': self.assigned_to_id,
            'registration_source': self.registration_source,
            'registered_by_name': self.registered_by_name,
            'contact_method': self.contact_method,
            'last_contact_date': iso(self.last_contact_date),
            'next_follow_up_date': iso(self.next_follow_up_date),
            'student_id': self.student_id,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if detail:
            data['interactions'] = [i.to_dict() for i in self.interactions]
            data['follow_ups'] = [f.to_dict() for f in self.follow_ups]
            data['application'] = self.application.to_dict() if self.application else None
            data['assessments'] = [a.to_dict() for a in self.assessments]
            data['offer'] = self.offer.to_dict() if self.offer else None
            data['payments'] = [p.to_dict() for p in self.payments]
        return data


class LeadInteraction(db.Model):
    __tablename__ = 'lead_interactions'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), nullable=False, index=True)
    interaction_type = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=False)
    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    conducted_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'type': self.interaction_type,
            'description': self.description,
            'occurred_at': iso(self.occurred_at),
            'conducted_by_id': self.conducted_by_id,
        }


class FollowUp(db.Model):
    __tablename__ = 'lead_follow_ups'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), nullable=False, index=True)
    scheduled_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(*FollowUpStatus.ALL, name='follow_up_status'),
                       default=FollowUpStatus.PENDING, nullable=False)
    completed_date = db.Column(db.DateTime)
    outcome = db.Column(db.Text)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'scheduled_date': iso(self.scheduled_date),
            'description': self.description,
            'status': self.status,
            'completed_date': iso(self.completed_date),
            'outcome': self.outcome,
            'assigned_to_id': self.assigned_to_id,
        }


class AdmissionApplication(db.Model):
    """Formal application; at most one per lead"""
    __tablename__ = 'admission_applications'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), unique=True, nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    application_number = db.Column(db.String(50), unique=True, nullable=False)
    application_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.Enum(*ApplicationStatus.ALL, name='application_status'),
                       default=ApplicationStatus.SUBMITTED, nullable=False)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    decision_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    decision_date = db.Column(db.DateTime)
    decision_notes = db.Column(db.Text)
    enrollment_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    stages = db.relationship('ApplicationStage', backref='application', lazy=True,
                             cascade='all, delete-orphan', order_by='ApplicationStage.sequence')
    requirements = db.relationship('ApplicationRequirement', backref='application', lazy=True,
                                   cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'branch_id': self.branch_id,
            'application_number': self.application_number,
            'application_date': iso(self.application_date),
            'status': self.status,
            'assigned_to_id': self.assigned_to_id,
            'decision_by_id': self.decision_by_id,
            'decision_date': iso(self.decision_date),
            'decision_notes': self.decision_notes,
            'enrollment_date': iso(self.enrollment_date),
            'stages': [s.to_dict() for s in self.stages],
            'requirements': [r.to_dict() for r in self.requirements],
        }


class ApplicationStage(db.Model):
    __tablename__ = 'application_stages'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('admission_applications.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    sequence = db.Column(db.Integer, nullable=False)
    status = db.Column(db.Enum(*StageStatus.ALL, name='stage_status'),
                       default=StageStatus.PENDING, nullable=False)
    completed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    completed_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'sequence': self.sequence,
            'status': self.status,
            'completed_by_id': self.completed_by_id,
            'completed_date': iso(self.completed_date),
            'notes': self.notes,
        }


class ApplicationRequirement(db.Model):
    __tablename__ = 'application_requirements'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('admission_applications.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    status = db.Column(db.Enum(*RequirementStatus.ALL, name='requirement_status'),
                       default=RequirementStatus.PENDING, nullable=False)
    completed_date = db.Column(db.DateTime)
    document_url = db.Column(db.String(500))
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_required': self.is_required,
            'status': self.status,
            'completed_date': iso(self.completed_date),
            'document_url': self.document_url,
            'notes': self.notes,
        }


class Assessment(db.Model):
    """Entrance exam, interview or placement test of a lead"""
    __tablename__ = 'admission_assessments'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), nullable=False, index=True)
    assessment_type = db.Column(db.Enum(*AssessmentType.ALL, name='assessment_type'), nullable=False)
    subject = db.Column(db.String(100))
    scheduled_date = db.Column(db.DateTime, nullable=False)
    actual_date = db.Column(db.DateTime)
    assessor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    status = db.Column(db.Enum(*AssessmentStatus.ALL, name='assessment_status'),
                       default=AssessmentStatus.SCHEDULED, nullable=False)
    score = db.Column(db.Numeric(7, 2))
    max_score = db.Column(db.Numeric(7, 2))
    result = db.Column(db.Enum(*AssessmentResult.ALL, name='assessment_result'), nullable=True)
    location = db.Column(db.String(150))
    duration_minutes = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'type': self.assessment_type,
            'subject': self.subject,
            'scheduled_date': iso(self.scheduled_date),
            'actual_date': iso(self.actual_date),
            'assessor_id': self.assessor_id,
            'status': self.status,
            'score': as_float(self.score),
            'max_score': as_float(self.max_score),
            'result': self.result,
            'location': self.location,
            'duration_minutes': self.duration_minutes,
            'notes': self.notes,
        }


class AdmissionOffer(db.Model):
    """Offer of a seat; at most one per lead"""
    __tablename__ = 'admission_offers'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), unique=True, nullable=False)
    offer_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expiry_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.Enum(*OfferStatus.ALL, name='offer_status'),
                       default=OfferStatus.PENDING, nullable=False)
    terms = db.Column(db.Text)
    offer_letter_url = db.Column(db.String(500))
    confirmed_date = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'offer_date': iso(self.offer_date),
            'expiry_date': iso(self.expiry_date),
            'status': self.status,
            'terms': self.terms,
            'offer_letter_url': self.offer_letter_url,
            'confirmed_date': iso(self.confirmed_date),
        }


class AdmissionPayment(db.Model):
    """Registration or confirmation fee collected against a lead"""
    __tablename__ = 'admission_payments'

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey('admission_leads.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    method = db.Column(db.Enum(*PaymentMethod.ALL, name='payment_method'), nullable=False)
    status = db.Column(db.Enum(*PaymentStatus.ALL, name='payment_status'),
                       default=PaymentStatus.COMPLETED, nullable=False)
    payment_type = db.Column(db.Enum(*PaymentType.ALL, name='payment_type'), nullable=False)
    reference = db.Column(db.String(100))
    invoice_number = db.Column(db.String(50))
    payment_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    processed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'amount': as_float(self.amount),
            'method': self.method,
            'status': self.status,
            'type': self.payment_type,
            'reference': self.reference,
            'invoice_number': self.invoice_number,
            'payment_date': iso(self.payment_date),
            'processed_by_id': self.processed_by_id,
            'notes': self.notes,
        }
