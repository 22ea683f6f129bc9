"""
Database models initialization
"""

from schoolerp.models.database import db, init_db, seed_defaults, check_connection
from schoolerp.models.tenant import Branch, AcademicSession
from schoolerp.models.user import User, Role, RolePermission, user_roles
from schoolerp.models.people import Student, Staff, StaffType
from schoolerp.models.admission import (
    AdmissionStatus, ApplicationStatus, StageStatus, RequirementStatus, FollowUpStatus,
    AssessmentType, AssessmentStatus, AssessmentResult, OfferStatus,
    PaymentMethod, PaymentStatus, PaymentType, RegistrationSource,
    LeadSource, AdmissionLead, LeadInteraction, FollowUp,
    AdmissionApplication, ApplicationStage, ApplicationRequirement,
    Assessment, AdmissionOffer, AdmissionPayment
)
from schoolerp.models.leave import LeaveStatus, LeavePolicy, LeaveBalance, LeaveApplication
from schoolerp.models.attendance import (
    AttendanceStatus, StudentAttendance, AttendanceLocation, StaffAttendance
)
from schoolerp.models.examination import (
    GradeScale, GradeRange, AssessmentSchema, AssessmentComponent, AssessmentScore
)
from schoolerp.models.salary import (
    SalaryPaymentStatus, SalaryStructure, StaffSalary, SalaryPayment
)
from schoolerp.models.courtesy_call import CallerType, CourtesyCallFeedback
from schoolerp.models.communication import (
    TemplateCategory, TemplateStatus, RecipientStatus,
    WhatsAppTemplate, Message, MessageRecipient
)

# Export all models
__all__ = [
    'db', 'init_db', 'seed_defaults', 'check_connection',
    'Branch', 'AcademicSession',
    'User', 'Role', 'RolePermission', 'user_roles',
    'Student', 'Staff', 'StaffType',
    'AdmissionStatus', 'ApplicationStatus', 'StageStatus', 'RequirementStatus', 'FollowUpStatus',
    'AssessmentType', 'AssessmentStatus', 'AssessmentResult', 'OfferStatus',
    'PaymentMethod', 'PaymentStatus', 'PaymentType', 'RegistrationSource',
    'LeadSource', 'AdmissionLead', 'LeadInteraction', 'FollowUp',
    'AdmissionApplication', 'ApplicationStage', 'ApplicationRequirement',
    'Assessment', 'AdmissionOffer', 'AdmissionPayment',
    'LeaveStatus', 'LeavePolicy', 'LeaveBalance', 'LeaveApplication',
    'AttendanceStatus', 'StudentAttendance', 'AttendanceLocation', 'StaffAttendance',
    'GradeScale', 'GradeRange', 'AssessmentSchema', 'AssessmentComponent', 'AssessmentScore',
    'SalaryPaymentStatus', 'SalaryStructure', 'StaffSalary', 'SalaryPayment',
    'CallerType', 'CourtesyCallFeedback',
    'TemplateCategory', 'TemplateStatus', 'RecipientStatus',
    'WhatsAppTemplate', 'Message', 'MessageRecipient',
]
