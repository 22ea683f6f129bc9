"""
Student and staff records
"""

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import or_

from schoolerp.models import db, User, Branch, Student, Staff
from schoolerp.services import numbering
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import ConflictError, NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info, paginate_query

STUDENT_FIELDS = (
    'first_name', 'last_name', 'date_of_birth', 'gender', 'class_name', 'section', 'roll_number',
    'guardian_name', 'guardian_phone', 'guardian_email', 'address', 'is_active', 'date_of_admission',
)
STAFF_FIELDS = (
    'staff_type', 'first_name', 'last_name', 'email', 'phone', 'designation', 'department',
    'is_active', 'join_date',
)


class PeopleService:
    """Student and staff service class"""

    # Students

    @staticmethod
    def create_student(data: Dict[str, Any], user: User) -> Student:
        """Create a student; the admission number is generated when not given"""
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        student = Student(branch_id=branch_id,
                          **{k: data[k] for k in STUDENT_FIELDS if data.get(k) is not None})

        if data.get('admission_number'):
            if Student.query.filter_by(branch_id=branch_id, admission_number=data['admission_number']).first():
                raise ConflictError("Admission number already in use")
            student.admission_number = data['admission_number']
            db.session.add(student)
            db.session.commit()
        else:
            branch = db.session.get(Branch, branch_id)
            prefix = numbering.admission_prefix(branch, date.today().year)
            numbering.insert_numbered(student, 'admission_number', prefix,
                                      numbering.next_admission_sequence(branch_id, prefix), 'admission')

        log_info(f"Student {student.admission_number} created")
        return student

    @staticmethod
    def list_students(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = Student.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(Student.branch_id == branch_id)
        if filters.get('class_name'):
            query = query.filter(Student.class_name == filters['class_name'])
        if filters.get('section'):
            query = query.filter(Student.section == filters['section'])
        if not filters.get('include_inactive'):
            query = query.filter(Student.is_active.is_(True))
        if filters.get('search'):
            term = f"%{filters['search']}%"
            query = query.filter(or_(
                Student.first_name.ilike(term),
                Student.last_name.ilike(term),
                Student.admission_number.ilike(term),
                Student.guardian_phone.ilike(term),
            ))
        query = query.order_by(Student.class_name, Student.section, Student.roll_number, Student.first_name)
        return paginate_query(query, page, limit)

    @staticmethod
    def get_student(student_id: int, user: User) -> Student:
        return TenantService.get_scoped(Student, student_id, user, "Student")

    @staticmethod
    def update_student(student_id: int, data: Dict[str, Any], user: User) -> Student:
        student = PeopleService.get_student(student_id, user)
        number = data.get('admission_number')
        if number and number != student.admission_number:
            if Student.query.filter_by(branch_id=student.branch_id, admission_number=number).first():
                raise ConflictError("Admission number already in use")
            student.admission_number = number
        for key in STUDENT_FIELDS:
            if key in data:
                setattr(student, key, data[key])
        db.session.commit()
        log_info(f"Student {student.admission_number} updated")
        return student

    # Staff

    @staticmethod
    def create_staff(data: Dict[str, Any], user: User) -> Staff:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        if Staff.query.filter_by(branch_id=branch_id, employee_code=data['employee_code']).first():
            raise ConflictError(f"Employee code '{data['employee_code']}' already exists")

        staff = Staff(branch_id=branch_id, employee_code=data['employee_code'],
                      **{k: data[k] for k in STAFF_FIELDS if data.get(k) is not None})
        db.session.add(staff)
        if data.get('user_id'):
            PeopleService._link(staff, data['user_id'])
        db.session.commit()
        log_info(f"Staff {staff.employee_code} ({staff.staff_type}) created")
        return staff

    @staticmethod
    def list_staff(user: User, filters: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        query = Staff.query
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        if filters.get('staff_type'):
            query = query.filter(Staff.staff_type == filters['staff_type'])
        if filters.get('department'):
            query = query.filter(Staff.department == filters['department'])
        if not filters.get('include_inactive'):
            query = query.filter(Staff.is_active.is_(True))
        if filters.get('search'):
            term = f"%{filters['search']}%"
            query = query.filter(or_(
                Staff.first_name.ilike(term),
                Staff.last_name.ilike(term),
                Staff.employee_code.ilike(term),
            ))
        return paginate_query(query.order_by(Staff.first_name, Staff.last_name), page, limit)

    @staticmethod
    def get_staff(staff_id: int, user: User) -> Staff:
        return TenantService.get_scoped(Staff, staff_id, user, "Staff")

    @staticmethod
    def update_staff(staff_id: int, data: Dict[str, Any], user: User) -> Staff:
        staff = PeopleService.get_staff(staff_id, user)
        code = data.get('employee_code')
        if code and code != staff.employee_code:
            if Staff.query.filter_by(branch_id=staff.branch_id, employee_code=code).first():
                raise ConflictError(f"Employee code '{code}' already exists")
            staff.employee_code = code
        for key in STAFF_FIELDS:
            if key in data:
                setattr(staff, key, data[key])
        db.session.commit()
        log_info(f"Staff {staff.employee_code} updated")
        return staff

    @staticmethod
    def link_user(staff_id: int, user_id: Optional[int], user: User) -> Staff:
        """Attach a login to a staff record, or detach it with None"""
        staff = PeopleService.get_staff(staff_id, user)
        if user_id is None:
            staff.user_id = None
        else:
            PeopleService._link(staff, user_id)
        db.session.commit()
        log_info(f"Staff {staff.employee_code} linked to user {staff.user_id}")
        return staff

    @staticmethod
    def _link(staff: Staff, user_id: int) -> None:
        account = db.session.get(User, user_id)
        if account is None:
            raise NotFoundError("User not found")
        if account.branch_id is not None and account.branch_id != staff.branch_id:
            raise ValidationError("User belongs to another branch")
        other = Staff.query.filter(Staff.user_id == account.id, Staff.id != staff.id).first()
        if other is not None:
            raise ConflictError(f"User is already linked to staff {other.employee_code}")
        staff.user_id = account.id
