"""
Admissions: leads, sources, statistics and conversion to students
"""

from datetime import date, datetime, time
from typing import Any, Dict, Optional

from sqlalchemy import or_

from schoolerp.models import (
    db, AcademicSession, Branch, User, Student,
    AdmissionLead, AdmissionStatus, ApplicationStatus, AdmissionApplication,
    LeadSource, LeadInteraction, FollowUp, FollowUpStatus, RegistrationSource
)
from schoolerp.services import numbering
from schoolerp.services.admission_workflow import (
    ENROLLABLE, VIA_ARCHIVE, VIA_ENROLLMENT, advance_lead, transition_lead
)
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import (
    ConflictError, InvalidTransitionError, NotFoundError, ValidationError
)
from schoolerp.utils.helpers import log_info, paginate_query

ARCHIVED_SUFFIX = ' (Archived)'

LEAD_FIELDS = (
    'first_name', 'last_name', 'birth_date', 'gender', 'applied_class', 'parent_name',
    'parent_phone', 'parent_email', 'address', 'city', 'state', 'country', 'previous_school',
    'source_id', 'notes', 'assigned_to_id', 'contact_method', 'next_follow_up_date',
)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


class AdmissionService:
    """Lead management and admissions reporting"""

    # Leads

    @staticmethod
    def create_lead(data: Dict[str, Any], user: Optional[User] = None) -> AdmissionLead:
        """
        Register a new lead

        Without a user this is the public inquiry form (registration source
        ONLINE); staff entries are OFFLINE and record the registrant.
        """
        if user is None:
            branch = db.session.get(Branch, data.get('branch_id'))
            if branch is None or not branch.is_active:
                raise NotFoundError("Branch not found")
        else:
            branch = db.session.get(Branch, TenantService.require_branch_id(user, data.get('branch_id')))

        academic_session = AdmissionService._resolve_session(branch, data.get('session_id'))
        AdmissionService._check_references(data)

        lead = AdmissionLead(branch_id=branch.id,
                             session_id=academic_session.id if academic_session else None,
                             status=AdmissionStatus.NEW)
        for key in LEAD_FIELDS:
            if key in data:
                setattr(lead, key, data[key])

        if user is None:
            lead.registration_source = RegistrationSource.ONLINE
            lead.registered_by_name = data['parent_name']
        else:
            lead.registration_source = RegistrationSource.OFFLINE
            lead.registered_by_name = user.full_name

        prefix = numbering.registration_prefix(branch, academic_session)
        numbering.insert_numbered(lead, 'registration_number', prefix,
                                  numbering.next_registration_sequence(prefix), 'registration')
        log_info(f"Lead {lead.registration_number} registered ({lead.registration_source})")
        return lead

    @staticmethod
    def list_leads(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = AdmissionService._lead_query(user, filters)
        if filters.get('status'):
            query = query.filter(AdmissionLead.status == filters['status'])
        elif not filters.get('include_archived'):
            query = query.filter(AdmissionLead.status != AdmissionStatus.ARCHIVED)
        if filters.get('source_id'):
            query = query.filter(AdmissionLead.source_id == filters['source_id'])
        if filters.get('assigned_to_id'):
            query = query.filter(AdmissionLead.assigned_to_id == filters['assigned_to_id'])
        if filters.get('search'):
            term = f"%{filters['search'].strip()}%"
            query = query.filter(or_(
                AdmissionLead.first_name.ilike(term),
                AdmissionLead.last_name.ilike(term),
                AdmissionLead.parent_name.ilike(term),
                AdmissionLead.parent_phone.ilike(term),
                AdmissionLead.parent_email.ilike(term),
                AdmissionLead.registration_number.ilike(term),
            ))
        query = query.order_by(AdmissionLead.created_at.desc(), AdmissionLead.id.desc())
        return paginate_query(query, page, limit)

    @staticmethod
    def get_lead(lead_id: int, user: User) -> AdmissionLead:
        return TenantService.get_scoped(AdmissionLead, lead_id, user, "Lead")

    @staticmethod
    def update_lead(lead_id: int, data: Dict[str, Any], user: User) -> AdmissionLead:
        lead = AdmissionService.get_lead(lead_id, user)
        if lead.status == AdmissionStatus.ARCHIVED:
            raise ValidationError("Archived leads cannot be edited")
        AdmissionService._check_references(data)
        if 'session_id' in data:
            academic_session = AdmissionService._resolve_session(lead.branch, data['session_id'])
            lead.session_id = academic_session.id if academic_session else None
        for key in LEAD_FIELDS:
            if key in data:
                setattr(lead, key, data[key])
        db.session.commit()
        log_info(f"Lead {lead.registration_number} updated")
        return lead

    @staticmethod
    def change_status(lead_id: int, status: str, user: User, notes: Optional[str] = None) -> AdmissionLead:
        lead = AdmissionService.get_lead(lead_id, user)
        transition_lead(lead, status)
        if notes:
            db.session.add(LeadInteraction(lead_id=lead.id, interaction_type='NOTE',
                                           description=f"Status changed to {status}: {notes}",
                                           conducted_by_id=user.id))
        db.session.commit()
        return lead

    @staticmethod
    def mark_contacted(lead_id: int, user: User, method: Optional[str] = None) -> AdmissionLead:
        lead = AdmissionService.get_lead(lead_id, user)
        AdmissionService._touch_contact(lead, datetime.utcnow())
        if method:
            lead.contact_method = method
        db.session.commit()
        return lead

    @staticmethod
    def add_interaction(lead_id: int, data: Dict[str, Any], user: User) -> LeadInteraction:
        lead = AdmissionService.get_lead(lead_id, user)
        occurred_at = data.get('occurred_at') or datetime.utcnow()
        interaction = LeadInteraction(lead_id=lead.id, interaction_type=data['type'],
                                      description=data['description'], occurred_at=occurred_at,
                                      conducted_by_id=user.id)
        db.session.add(interaction)
        AdmissionService._touch_contact(lead, occurred_at)
        db.session.commit()
        log_info(f"Interaction {interaction.interaction_type} logged for lead {lead.registration_number}")
        return interaction

    @staticmethod
    def add_follow_up(lead_id: int, data: Dict[str, Any], user: User) -> FollowUp:
        lead = AdmissionService.get_lead(lead_id, user)
        follow_up = FollowUp(lead_id=lead.id, scheduled_date=data['scheduled_date'],
                             description=data['description'],
                             assigned_to_id=data.get('assigned_to_id') or user.id)
        db.session.add(follow_up)
        lead.next_follow_up_date = follow_up.scheduled_date
        db.session.commit()
        return follow_up

    @staticmethod
    def update_follow_up(follow_up_id: int, data: Dict[str, Any], user: User) -> FollowUp:
        follow_up = db.session.get(FollowUp, follow_up_id)
        if follow_up is None or not TenantService.can_access(user, follow_up.lead.branch_id):
            raise NotFoundError("Follow-up not found")
        for key in ('scheduled_date', 'description', 'status', 'outcome', 'assigned_to_id'):
            if key in data:
                setattr(follow_up, key, data[key])
        if follow_up.status == FollowUpStatus.COMPLETED and follow_up.completed_date is None:
            follow_up.completed_date = datetime.utcnow()
        db.session.commit()
        return follow_up

    @staticmethod
    def archive_lead(lead_id: int, user: User) -> AdmissionLead:
        """Archive a lead and free its registration number"""
        lead = AdmissionService.get_lead(lead_id, user)
        if lead.status == AdmissionStatus.ARCHIVED:
            raise ValidationError("Lead is already archived")
        transition_lead(lead, AdmissionStatus.ARCHIVED, via=VIA_ARCHIVE)
        if not lead.registration_number.endswith(ARCHIVED_SUFFIX):
            lead.registration_number = f"{lead.registration_number}{ARCHIVED_SUFFIX}"
        db.session.commit()
        return lead

    @staticmethod
    def leads_by_status(user: User, filters: Dict[str, Any]) -> Dict[str, Any]:
        """Kanban board: every status with its leads"""
        board = {status: [] for status in AdmissionStatus.ALL if status != AdmissionStatus.ARCHIVED}
        query = AdmissionService._lead_query(user, filters).filter(
            AdmissionLead.status != AdmissionStatus.ARCHIVED
        ).order_by(AdmissionLead.updated_at.desc())
        for lead in query.all():
            board[lead.status].append(lead.to_dict())
        return board

    @staticmethod
    def funnel_stats(user: User, filters: Dict[str, Any]) -> Dict[str, Any]:
        base = AdmissionService._lead_query(user, filters)

        def count(*statuses):
            return base.filter(AdmissionLead.status.in_(statuses)).count()

        total = base.count()
        fee_paid = count(AdmissionStatus.FEE_PAID)
        assessed = count(AdmissionStatus.ASSESSMENT_COMPLETED, AdmissionStatus.INTERVIEW_COMPLETED)
        offered = count(AdmissionStatus.OFFERED)
        accepted = count(AdmissionStatus.ACCEPTED)
        enrolled = count(AdmissionStatus.ENROLLED)

        return {
            'total_leads': total,
            'fee_paid_leads': fee_paid,
            'assessed_leads': assessed,
            'offered_leads': offered,
            'accepted_leads': accepted,
            'enrolled_leads': enrolled,
            'fee_conversion_rate': _percent(fee_paid, total),
            'assessment_conversion_rate': _percent(assessed, fee_paid),
            'offer_conversion_rate': _percent(offered, assessed),
            'acceptance_rate': _percent(accepted, offered),
            'enrollment_rate': _percent(enrolled, accepted),
            'overall_conversion_rate': _percent(enrolled, total),
        }

    @staticmethod
    def dashboard_stats(user: User, filters: Dict[str, Any]) -> Dict[str, Any]:
        closed = (AdmissionStatus.ENROLLED, AdmissionStatus.CLOSED_LOST, AdmissionStatus.REJECTED)
        leads = AdmissionService._lead_query(user, filters)
        total = leads.count()
        new = leads.filter(AdmissionLead.status == AdmissionStatus.NEW).count()
        completed = leads.filter(AdmissionLead.status.in_(closed)).count()
        in_progress = leads.filter(
            AdmissionLead.status.notin_(closed + (AdmissionStatus.NEW,))
        ).count()

        applications = AdmissionService._filter_leads(
            AdmissionApplication.query.join(AdmissionLead, AdmissionApplication.lead_id == AdmissionLead.id),
            user, filters,
        )
        total_applications = applications.count()
        pending = applications.filter(AdmissionApplication.status.notin_((
            ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED,
            ApplicationStatus.ENROLLED, ApplicationStatus.WITHDRAWN,
        ))).count()
        accepted = applications.filter(AdmissionApplication.status.in_((
            ApplicationStatus.ACCEPTED, ApplicationStatus.ENROLLED,
        ))).count()
        rejected = applications.filter(AdmissionApplication.status.in_((
            ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN,
        ))).count()

        return {
            'total_leads': total,
            'new_leads': new,
            'in_progress_leads': in_progress,
            'completed_leads': completed,
            'total_applications': total_applications,
            'pending_applications': pending,
            'accepted_applications': accepted,
            'rejected_applications': rejected,
            'conversion_rate': round(accepted / total_applications * 100) if total_applications else 0,
        }

    # Lead sources

    @staticmethod
    def list_sources(include_inactive: bool = False):
        query = LeadSource.query
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return [s.to_dict() for s in query.order_by(LeadSource.name).all()]

    @staticmethod
    def create_source(data: Dict[str, Any]) -> LeadSource:
        if LeadSource.query.filter_by(name=data['name']).first():
            raise ConflictError(f"Lead source '{data['name']}' already exists")
        source = LeadSource(**data)
        db.session.add(source)
        db.session.commit()
        return source

    @staticmethod
    def update_source(source_id: int, data: Dict[str, Any]) -> LeadSource:
        source = db.session.get(LeadSource, source_id)
        if source is None:
            raise NotFoundError("Lead source not found")
        name = data.get('name')
        if name and name != source.name and LeadSource.query.filter_by(name=name).first():
            raise ConflictError(f"Lead source '{name}' already exists")
        for key, value in data.items():
            setattr(source, key, value)
        db.session.commit()
        return source

    @staticmethod
    def delete_source(source_id: int) -> None:
        source = db.session.get(LeadSource, source_id)
        if source is None:
            raise NotFoundError("Lead source not found")
        if AdmissionLead.query.filter_by(source_id=source.id).first():
            raise ConflictError("Lead source is in use; deactivate it instead")
        db.session.delete(source)
        db.session.commit()

    # Conversion

    @staticmethod
    def convert_to_student(lead_id: int, data: Dict[str, Any], user: User) -> Student:
        """Create the student record of an offered/accepted/paid lead and enroll it"""
        lead = AdmissionService.get_lead(lead_id, user)
        if lead.status not in ENROLLABLE:
            raise InvalidTransitionError(f"Cannot convert a lead in status {lead.status}")
        lead_id = lead.id
        branch = lead.branch

        student = Student(
            branch_id=branch.id,
            first_name=lead.first_name,
            last_name=lead.last_name,
            date_of_birth=lead.birth_date,
            gender=lead.gender,
            class_name=data.get('class_name') or lead.applied_class,
            section=data.get('section'),
            roll_number=data.get('roll_number'),
            guardian_name=lead.parent_name,
            guardian_phone=lead.parent_phone,
            guardian_email=lead.parent_email,
            address=lead.address,
            date_of_admission=date.today(),
        )
        if data.get('admission_number'):
            if Student.query.filter_by(branch_id=branch.id, admission_number=data['admission_number']).first():
                raise ConflictError("Admission number already in use")
            student.admission_number = data['admission_number']
            db.session.add(student)
            db.session.commit()
        else:
            prefix = numbering.admission_prefix(branch, date.today().year)
            numbering.insert_numbered(student, 'admission_number', prefix,
                                      numbering.next_admission_sequence(branch.id, prefix), 'admission')

        lead = db.session.get(AdmissionLead, lead_id)
        transition_lead(lead, AdmissionStatus.ENROLLED, via=VIA_ENROLLMENT)
        lead.student_id = student.id
        if lead.application is not None:
            lead.application.status = ApplicationStatus.ENROLLED
            lead.application.enrollment_date = datetime.utcnow()
        db.session.commit()
        log_info(f"Lead {lead.registration_number} converted to student {student.admission_number}")
        return student

    # Internals

    @staticmethod
    def _lead_query(user: User, filters: Dict[str, Any]):
        return AdmissionService._filter_leads(AdmissionLead.query, user, filters)

    @staticmethod
    def _filter_leads(query, user: User, filters: Dict[str, Any]):
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(AdmissionLead.branch_id == branch_id)
        if filters.get('from_date'):
            query = query.filter(AdmissionLead.created_at >= datetime.combine(filters['from_date'], time.min))
        if filters.get('to_date'):
            query = query.filter(AdmissionLead.created_at <= datetime.combine(filters['to_date'], time.max))
        return query

    @staticmethod
    def _resolve_session(branch: Branch, session_id: Optional[int]) -> Optional[AcademicSession]:
        if session_id is None:
            return TenantService.current_session(branch.id)
        academic_session = db.session.get(AcademicSession, session_id)
        if academic_session is None or academic_session.branch_id != branch.id:
            raise ValidationError("Academic session does not belong to this branch")
        return academic_session

    @staticmethod
    def _check_references(data: Dict[str, Any]) -> None:
        if data.get('source_id') and db.session.get(LeadSource, data['source_id']) is None:
            raise ValidationError("Lead source not found")
        if data.get('assigned_to_id') and db.session.get(User, data['assigned_to_id']) is None:
            raise ValidationError("Assigned user not found")

    @staticmethod
    def _touch_contact(lead: AdmissionLead, when: datetime) -> None:
        lead.last_contact_date = when
        if lead.status == AdmissionStatus.NEW:
            advance_lead(lead, AdmissionStatus.CONTACTED)
