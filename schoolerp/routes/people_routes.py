"""
Student and staff routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.people import StudentSchema, StaffSchema
from schoolerp.services import PeopleService
from schoolerp.utils import create_response, get_pagination
from schoolerp.utils.decorators import permission_required
from schoolerp.utils.helpers import parse_bool, parse_int
from schoolerp.utils.permissions import Permission

people_bp = Blueprint('people', __name__)


@people_bp.route('/students', methods=['GET'])
@permission_required(Permission.VIEW_STUDENTS)
def list_students():
    page, limit = get_pagination()
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'class_name': request.args.get('class_name'),
        'section': request.args.get('section'),
        'search': request.args.get('search'),
        'include_inactive': parse_bool(request.args.get('include_inactive')),
    }
    result = PeopleService.list_students(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Students retrieved", result))


@people_bp.route('/students', methods=['POST'])
@permission_required(Permission.CREATE_STUDENT)
def create_student():
    data = load(StudentSchema(), request.get_json(silent=True))
    student = PeopleService.create_student(data, g.current_user)
    return jsonify(create_response(True, "Student created", student.to_dict())), 201


@people_bp.route('/students/<int:student_id>', methods=['GET'])
@permission_required(Permission.VIEW_STUDENTS)
def get_student(student_id):
    student = PeopleService.get_student(student_id, g.current_user)
    return jsonify(create_response(True, "Student retrieved", student.to_dict()))


@people_bp.route('/students/<int:student_id>', methods=['PUT'])
@permission_required(Permission.CREATE_STUDENT)
def update_student(student_id):
    data = load(StudentSchema(), request.get_json(silent=True), partial=True)
    student = PeopleService.update_student(student_id, data, g.current_user)
    return jsonify(create_response(True, "Student updated", student.to_dict()))


@people_bp.route('/staff', methods=['GET'])
@permission_required(Permission.VIEW_STAFF)
def list_staff():
    page, limit = get_pagination()
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'staff_type': request.args.get('staff_type'),
        'department': request.args.get('department'),
        'search': request.args.get('search'),
        'include_inactive': parse_bool(request.args.get('include_inactive')),
    }
    result = PeopleService.list_staff(g.current_user, filters, page, limit)
    return jsonify(create_response(True, "Staff retrieved", result))


@people_bp.route('/staff', methods=['POST'])
@permission_required(Permission.CREATE_STAFF)
def create_staff():
    data = load(StaffSchema(), request.get_json(silent=True))
    staff = PeopleService.create_staff(data, g.current_user)
    return jsonify(create_response(True, "Staff created", staff.to_dict())), 201


@people_bp.route('/staff/<int:staff_id>', methods=['GET'])
@permission_required(Permission.VIEW_STAFF)
def get_staff(staff_id):
    staff = PeopleService.get_staff(staff_id, g.current_user)
    return jsonify(create_response(True, "Staff retrieved", staff.to_dict()))


@people_bp.route('/staff/<int:staff_id>', methods=['PUT'])
@permission_required(Permission.CREATE_STAFF)
def update_staff(staff_id):
    data = load(StaffSchema(), request.get_json(silent=True), partial=True)
    staff = PeopleService.update_staff(staff_id, data, g.current_user)
    return jsonify(create_response(True, "Staff updated", staff.to_dict()))


@people_bp.route('/staff/<int:staff_id>/user', methods=['PUT'])
@permission_required(Permission.CREATE_STAFF)
def link_staff_user(staff_id):
    data = request.get_json(silent=True) or {}
    staff = PeopleService.link_user(staff_id, parse_int(data.get('user_id'), 'user_id'), g.current_user)
    return jsonify(create_response(True, "Staff account updated", staff.to_dict()))
