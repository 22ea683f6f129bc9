"""
Services package initialization
"""

from schoolerp.services.auth_service import AuthService
from schoolerp.services.rbac_service import RBACService
from schoolerp.services.tenant_service import TenantService
from schoolerp.services.admission_service import AdmissionService
from schoolerp.services.admission_process_service import AdmissionProcessService
from schoolerp.services.leave_service import LeaveService
from schoolerp.services.attendance_service import AttendanceService
from schoolerp.services.examination_service import ExaminationService
from schoolerp.services.salary_service import SalaryService
from schoolerp.services.people_service import PeopleService
from schoolerp.services.courtesy_call_service import CourtesyCallService
from schoolerp.services.communication_service import CommunicationService

__all__ = [
    'AuthService', 'RBACService', 'TenantService', 'AdmissionService', 'AdmissionProcessService',
    'LeaveService', 'AttendanceService', 'ExaminationService', 'SalaryService', 'PeopleService',
    'CourtesyCallService', 'CommunicationService',
]
