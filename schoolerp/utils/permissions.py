"""
Permission catalogue and default role definitions
"""


class Permission:
    # Admissions
    VIEW_ADMISSION_INQUIRIES = "view_admission_inquiries"
    CREATE_ADMISSION_INQUIRY = "create_admission_inquiry"
    EDIT_ADMISSION_INQUIRY = "edit_admission_inquiry"
    MANAGE_ADMISSION_WORKFLOW = "manage_admission_workflow"
    ACCESS_ADMISSION_REPORTS = "access_admission_reports"

    # Attendance
    VIEW_ATTENDANCE = "view_attendance"
    MARK_ATTENDANCE = "mark_attendance"
    MARK_SELF_ATTENDANCE = "mark_self_attendance"
    MANAGE_ATTENDANCE_LOCATIONS = "manage_attendance_locations"

    # Leave
    VIEW_LEAVES = "view_leaves"
    MANAGE_LEAVE_APPLICATIONS = "manage_leave_applications"
    MANAGE_LEAVE_POLICIES = "manage_leave_policies"

    # Salary
    VIEW_SALARY = "view_salary"
    MANAGE_SALARY_STRUCTURES = "manage_salary_structures"
    MANAGE_STAFF_SALARIES = "manage_staff_salaries"
    PROCESS_SALARY = "process_salary"

    # Examination
    VIEW_EXAMINATIONS = "view_examinations"
    MANAGE_EXAMINATIONS = "manage_examinations"
    ENTER_MARKS = "enter_marks"

    # Courtesy calls
    VIEW_ALL_COURTESY_CALL_FEEDBACK = "view_all_courtesy_call_feedback"
    VIEW_OWN_COURTESY_CALL_FEEDBACK = "view_own_courtesy_call_feedback"
    CREATE_COURTESY_CALL_FEEDBACK = "create_courtesy_call_feedback"
    EDIT_COURTESY_CALL_FEEDBACK = "edit_courtesy_call_feedback"
    DELETE_COURTESY_CALL_FEEDBACK = "delete_courtesy_call_feedback"

    # Communication
    VIEW_COMMUNICATION = "view_communication"
    MANAGE_WHATSAPP_TEMPLATES = "manage_whatsapp_templates"
    SEND_MESSAGES = "send_messages"

    # People
    VIEW_STUDENTS = "view_students"
    CREATE_STUDENT = "create_student"
    VIEW_STAFF = "view_staff"
    CREATE_STAFF = "create_staff"

    # Administration
    MANAGE_BRANCHES = "manage_branches"
    MANAGE_ROLES = "manage_roles"


ALL_PERMISSIONS = sorted(
    value for key, value in vars(Permission).items()
    if not key.startswith('_') and isinstance(value, str)
)

SUPER_ADMIN_ROLE = "super_admin"

# Seeded on first start; editable afterwards except for the flag.
DEFAULT_ROLES = {
    SUPER_ADMIN_ROLE: ("Full access to every branch", ALL_PERMISSIONS),
    "principal": ("Branch head", [
        p for p in ALL_PERMISSIONS
        if p not in (Permission.MANAGE_BRANCHES, Permission.MANAGE_ROLES)
    ]),
    "admission_officer": ("Admissions desk", [
        Permission.VIEW_ADMISSION_INQUIRIES,
        Permission.CREATE_ADMISSION_INQUIRY,
        Permission.EDIT_ADMISSION_INQUIRY,
        Permission.MANAGE_ADMISSION_WORKFLOW,
        Permission.ACCESS_ADMISSION_REPORTS,
        Permission.VIEW_STUDENTS,
        Permission.CREATE_STUDENT,
    ]),
    "teacher": ("Class and subject teacher", [
        Permission.VIEW_ATTENDANCE,
        Permission.MARK_ATTENDANCE,
        Permission.MARK_SELF_ATTENDANCE,
        Permission.VIEW_LEAVES,
        Permission.VIEW_EXAMINATIONS,
        Permission.ENTER_MARKS,
        Permission.VIEW_OWN_COURTESY_CALL_FEEDBACK,
        Permission.CREATE_COURTESY_CALL_FEEDBACK,
        Permission.EDIT_COURTESY_CALL_FEEDBACK,
        Permission.VIEW_STUDENTS,
    ]),
    "accountant": ("Payroll and fees office", [
        Permission.VIEW_SALARY,
        Permission.MANAGE_SALARY_STRUCTURES,
        Permission.MANAGE_STAFF_SALARIES,
        Permission.PROCESS_SALARY,
        Permission.VIEW_STAFF,
    ]),
}
