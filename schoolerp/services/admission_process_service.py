"""
Admissions pipeline: applications, assessments, offers and payments

Each of these records pushes its lead forward through the status machine.
The record is always saved; the lead only moves when the move is allowed.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from schoolerp.models import (
    db, User, AdmissionLead, AdmissionStatus,
    AdmissionApplication, ApplicationStatus, ApplicationStage, ApplicationRequirement,
    StageStatus, RequirementStatus, Assessment, AssessmentStatus, AssessmentType,
    AdmissionOffer, OfferStatus, AdmissionPayment, PaymentStatus, PaymentType
)
from schoolerp.services import numbering
from schoolerp.services.admission_service import AdmissionService
from schoolerp.services.admission_workflow import VIA_ENROLLMENT, advance_lead
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import ConflictError, NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info, paginate_query

DEFAULT_STAGES = [
    {'name': 'Document Verification', 'description': 'Verify submitted documents'},
    {'name': 'Academic Assessment', 'description': 'Complete academic assessment'},
    {'name': 'Interview', 'description': 'Parent and student interview'},
    {'name': 'Final Decision', 'description': 'Review and make final decision'},
]

DEFAULT_REQUIREMENTS = [
    {'name': 'Birth Certificate', 'description': 'Copy of birth certificate'},
    {'name': 'Previous School Records', 'description': 'Transcripts from previous school'},
    {'name': 'ID Proof', 'description': 'Government issued ID proof'},
    {'name': 'Passport Photos', 'description': 'Recent passport size photographs'},
]

APPLICATION_LEAD_STATUS = {
    ApplicationStatus.ACCEPTED: AdmissionStatus.DECISION_PENDING,
    ApplicationStatus.REJECTED: AdmissionStatus.REJECTED,
    ApplicationStatus.WAITLISTED: AdmissionStatus.WAITLISTED,
    ApplicationStatus.WITHDRAWN: AdmissionStatus.CLOSED_LOST,
}

OFFER_LEAD_STATUS = {
    OfferStatus.ACCEPTED: AdmissionStatus.ACCEPTED,
    OfferStatus.DECLINED: AdmissionStatus.REJECTED,
    OfferStatus.EXPIRED: AdmissionStatus.CLOSED_LOST,
}

SCHEDULED_LEAD_STATUS = {
    AssessmentType.EXAM: AdmissionStatus.ASSESSMENT_SCHEDULED,
    AssessmentType.PLACEMENT_TEST: AdmissionStatus.ASSESSMENT_SCHEDULED,
    AssessmentType.INTERVIEW: AdmissionStatus.INTERVIEW_SCHEDULED,
}

COMPLETED_LEAD_STATUS = {
    AssessmentType.EXAM: AdmissionStatus.ASSESSMENT_COMPLETED,
    AssessmentType.PLACEMENT_TEST: AdmissionStatus.ASSESSMENT_COMPLETED,
    AssessmentType.INTERVIEW: AdmissionStatus.INTERVIEW_COMPLETED,
}


class AdmissionProcessService:
    """Applications, assessments, offers and payments of leads"""

    # Applications

    @staticmethod
    def create_application(data: Dict[str, Any], user: User) -> AdmissionApplication:
        lead = AdmissionService.get_lead(data['lead_id'], user)
        if lead.application is not None:
            raise ConflictError("This lead already has an application")
        lead_id = lead.id
        branch = lead.branch
        year = date.today().year

        application = AdmissionApplication(lead_id=lead.id, branch_id=lead.branch_id,
                                           assigned_to_id=data.get('assigned_to_id'),
                                           status=ApplicationStatus.SUBMITTED)
        for sequence, stage in enumerate(data.get('stages') or DEFAULT_STAGES, start=1):
            application.stages.append(ApplicationStage(name=stage['name'],
                                                       description=stage.get('description'),
                                                       sequence=sequence))
        for requirement in data.get('requirements') or DEFAULT_REQUIREMENTS:
            application.requirements.append(ApplicationRequirement(
                name=requirement['name'], description=requirement.get('description'),
                is_required=requirement.get('is_required', True)))

        prefix = numbering.application_prefix(branch, year)
        numbering.insert_numbered(application, 'application_number', prefix,
                                  numbering.next_application_sequence(prefix), 'application')

        lead = db.session.get(AdmissionLead, lead_id)
        advance_lead(lead, AdmissionStatus.APPLICATION_RECEIVED)
        db.session.commit()
        log_info(f"Application {application.application_number} created for lead {lead.registration_number}")
        return application

    @staticmethod
    def list_applications(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = AdmissionApplication.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(AdmissionApplication.branch_id == branch_id)
        if filters.get('status'):
            query = query.filter(AdmissionApplication.status == filters['status'])
        if filters.get('lead_id'):
            query = query.filter(AdmissionApplication.lead_id == filters['lead_id'])
        query = query.order_by(AdmissionApplication.application_date.desc())
        return paginate_query(query, page, limit)

    @staticmethod
    def get_application(application_id: int, user: User) -> AdmissionApplication:
        return TenantService.get_scoped(AdmissionApplication, application_id, user, "Application")

    @staticmethod
    def update_application_status(application_id: int, data: Dict[str, Any], user: User) -> AdmissionApplication:
        application = AdmissionProcessService.get_application(application_id, user)
        status = data['status']
        if status == ApplicationStatus.ENROLLED:
            raise ValidationError("Applications are enrolled by converting the lead to a student")
        if application.status == ApplicationStatus.ENROLLED:
            raise ValidationError("Application is already enrolled")

        application.status = status
        if 'decision_notes' in data:
            application.decision_notes = data['decision_notes']
        if status in APPLICATION_LEAD_STATUS:
            application.decision_by_id = user.id
            application.decision_date = datetime.utcnow()
            advance_lead(application.lead, APPLICATION_LEAD_STATUS[status])
        db.session.commit()
        log_info(f"Application {application.application_number} -> {status}")
        return application

    @staticmethod
    def update_stage(stage_id: int, data: Dict[str, Any], user: User) -> ApplicationStage:
        stage = db.session.get(ApplicationStage, stage_id)
        if stage is None or not TenantService.can_access(user, stage.application.branch_id):
            raise NotFoundError("Stage not found")
        stage.status = data['status']
        if 'notes' in data:
            stage.notes = data['notes']
        if stage.status == StageStatus.COMPLETED:
            stage.completed_date = data.get('completed_date') or datetime.utcnow()
            stage.completed_by_id = user.id
        db.session.commit()
        return stage

    @staticmethod
    def update_requirement(requirement_id: int, data: Dict[str, Any], user: User) -> ApplicationRequirement:
        requirement = db.session.get(ApplicationRequirement, requirement_id)
        if requirement is None or not TenantService.can_access(user, requirement.application.branch_id):
            raise NotFoundError("Requirement not found")
        requirement.status = data['status']
        for key in ('document_url', 'notes'):
            if key in data:
                setattr(requirement, key, data[key])
        if requirement.status == RequirementStatus.APPROVED:
            requirement.completed_date = data.get('completed_date') or datetime.utcnow()
        db.session.commit()
        return requirement

    # Assessments

    @staticmethod
    def create_assessment(data: Dict[str, Any], user: User) -> Assessment:
        lead = AdmissionService.get_lead(data['lead_id'], user)
        assessment = Assessment(
            lead_id=lead.id,
            assessment_type=data['type'],
            subject=data.get('subject'),
            scheduled_date=data['scheduled_date'],
            assessor_id=data.get('assessor_id'),
            location=data.get('location'),
            duration_minutes=data.get('duration_minutes'),
            max_score=data.get('max_score'),
            notes=data.get('notes'),
            status=AssessmentStatus.SCHEDULED,
        )
        db.session.add(assessment)
        advance_lead(lead, SCHEDULED_LEAD_STATUS[assessment.assessment_type])
        db.session.commit()
        log_info(f"{assessment.assessment_type} scheduled for lead {lead.registration_number}")
        return assessment

    @staticmethod
    def update_assessment(assessment_id: int, data: Dict[str, Any], user: User) -> Assessment:
        assessment = AdmissionProcessService._get_assessment(assessment_id, user)
        was_completed = assessment.status == AssessmentStatus.COMPLETED

        for key in ('status', 'scheduled_date', 'actual_date', 'assessor_id', 'score',
                    'max_score', 'result', 'location', 'notes'):
            if key in data:
                setattr(assessment, key, data[key])

        if (assessment.score is not None and assessment.max_score is not None
                and assessment.score > assessment.max_score):
            raise ValidationError("Score cannot exceed the maximum score")

        if assessment.status == AssessmentStatus.COMPLETED and not was_completed:
            if assessment.actual_date is None:
                assessment.actual_date = datetime.utcnow()
            advance_lead(assessment.lead, COMPLETED_LEAD_STATUS[assessment.assessment_type])
        db.session.commit()
        return assessment

    @staticmethod
    def list_assessments(user: User, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = Assessment.query.join(AdmissionLead, Assessment.lead_id == AdmissionLead.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(AdmissionLead.branch_id == branch_id)
        if filters.get('lead_id'):
            query = query.filter(Assessment.lead_id == filters['lead_id'])
        if filters.get('type'):
            query = query.filter(Assessment.assessment_type == filters['type'])
        if filters.get('status'):
            query = query.filter(Assessment.status == filters['status'])
        if filters.get('from_date'):
            query = query.filter(Assessment.scheduled_date >= datetime.combine(filters['from_date'], time.min))
        if filters.get('to_date'):
            query = query.filter(Assessment.scheduled_date <= datetime.combine(filters['to_date'], time.max))
        return [a.to_dict() for a in query.order_by(Assessment.scheduled_date).all()]

    # Offers

    @staticmethod
    def create_offer(data: Dict[str, Any], user: User) -> AdmissionOffer:
        lead = AdmissionService.get_lead(data['lead_id'], user)
        if lead.offer is not None:
            raise ConflictError("This lead already has an offer")
        if data['expiry_date'] <= date.today():
            raise ValidationError("Offer expiry date must be in the future")

        offer = AdmissionOffer(lead_id=lead.id, expiry_date=data['expiry_date'],
                               terms=data.get('terms'), offer_letter_url=data.get('offer_letter_url'),
                               status=OfferStatus.PENDING)
        db.session.add(offer)
        advance_lead(lead, AdmissionStatus.OFFERED)
        db.session.commit()
        log_info(f"Offer created for lead {lead.registration_number}")
        return offer

    @staticmethod
    def update_offer_status(offer_id: int, status: str, user: User) -> AdmissionOffer:
        offer = db.session.get(AdmissionOffer, offer_id)
        if offer is None or not TenantService.can_access(user, offer.lead.branch_id):
            raise NotFoundError("Offer not found")
        offer.status = status
        if status == OfferStatus.ACCEPTED and offer.confirmed_date is None:
            offer.confirmed_date = datetime.utcnow()
        if status in OFFER_LEAD_STATUS:
            advance_lead(offer.lead, OFFER_LEAD_STATUS[status])
        db.session.commit()
        log_info(f"Offer {offer.id} -> {status}")
        return offer

    @staticmethod
    def get_offer_by_lead(lead_id: int, user: User) -> Optional[AdmissionOffer]:
        return AdmissionService.get_lead(lead_id, user).offer

    # Payments

    @staticmethod
    def record_payment(data: Dict[str, Any], user: User) -> AdmissionPayment:
        lead = AdmissionService.get_lead(data['lead_id'], user)
        payment = AdmissionPayment(
            lead_id=lead.id,
            amount=data['amount'],
            method=data['method'],
            status=data.get('status', PaymentStatus.COMPLETED),
            payment_type=data['type'],
            reference=data.get('reference'),
            invoice_number=data.get('invoice_number'),
            payment_date=data.get('payment_date') or datetime.utcnow(),
            processed_by_id=user.id,
            notes=data.get('notes'),
        )
        db.session.add(payment)

        if payment.status == PaymentStatus.COMPLETED:
            if payment.payment_type == PaymentType.REGISTRATION:
                advance_lead(lead, AdmissionStatus.FEE_PAID)
            elif payment.payment_type == PaymentType.ADMISSION_CONFIRMATION:
                advance_lead(lead, AdmissionStatus.ENROLLED, via=VIA_ENROLLMENT)
                if lead.offer is not None:
                    lead.offer.status = OfferStatus.ACCEPTED
                    lead.offer.confirmed_date = datetime.utcnow()

        db.session.commit()
        log_info(f"{payment.payment_type} payment of {payment.amount} recorded for lead {lead.registration_number}")
        return payment

    @staticmethod
    def list_payments(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = AdmissionPayment.query.join(AdmissionLead, AdmissionPayment.lead_id == AdmissionLead.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(AdmissionLead.branch_id == branch_id)
        for key, column in (('lead_id', AdmissionPayment.lead_id), ('type', AdmissionPayment.payment_type),
                            ('status', AdmissionPayment.status), ('method', AdmissionPayment.method)):
            if filters.get(key):
                query = query.filter(column == filters[key])
        if filters.get('from_date'):
            query = query.filter(AdmissionPayment.payment_date >= datetime.combine(filters['from_date'], time.min))
        if filters.get('to_date'):
            query = query.filter(AdmissionPayment.payment_date <= datetime.combine(filters['to_date'], time.max))
        query = query.order_by(AdmissionPayment.payment_date.desc())
        return paginate_query(query, page, limit)

    @staticmethod
    def _get_assessment(assessment_id: int, user: User) -> Assessment:
        assessment = db.session.get(Assessment, assessment_id)
        if assessment is None or not TenantService.can_access(user, assessment.lead.branch_id):
            raise NotFoundError("Assessment not found")
        return assessment
