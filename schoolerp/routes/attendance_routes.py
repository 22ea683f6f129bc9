"""
Student attendance and staff check-in routes
"""

from datetime import date

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.attendance import (
    MarkAttendanceSchema, BulkAttendanceSchema, AttendanceLocationSchema, CheckInSchema
)
from schoolerp.services import AttendanceService
from schoolerp.utils import ValidationError, create_response
from schoolerp.utils.decorators import permission_required
from schoolerp.utils.helpers import parse_bool, parse_date, parse_int
from schoolerp.utils.permissions import Permission

attendance_bp = Blueprint('attendance', __name__)


@attendance_bp.route('/students', methods=['POST'])
@permission_required(Permission.MARK_ATTENDANCE)
def mark_attendance():
    data = load(MarkAttendanceSchema(), request.get_json(silent=True))
    record = AttendanceService.mark(data, g.current_user)
    return jsonify(create_response(True, "Attendance marked", record.to_dict()))


@attendance_bp.route('/students/bulk', methods=['POST'])
@permission_required(Permission.MARK_ATTENDANCE)
def bulk_mark_attendance():
    data = load(BulkAttendanceSchema(), request.get_json(silent=True))
    records = AttendanceService.bulk_mark(data, g.current_user)
    return jsonify(create_response(True, f"Attendance marked for {len(records)} students",
                                   [r.to_dict() for r in records]))


@attendance_bp.route('/class', methods=['GET'])
@permission_required(Permission.VIEW_ATTENDANCE)
def class_attendance():
    class_name = request.args.get('class_name')
    if not class_name:
        raise ValidationError("class_name is required")
    day = parse_date(request.args.get('date')) or date.today()
    result = AttendanceService.class_attendance(g.current_user, class_name, day,
                                                request.args.get('section'),
                                                parse_int(request.args.get('branch_id'), 'branch_id'))
    return jsonify(create_response(True, "Class attendance retrieved", result))


@attendance_bp.route('/students/<int:student_id>/summary', methods=['GET'])
@permission_required(Permission.VIEW_ATTENDANCE)
def student_summary(student_id):
    start = parse_date(request.args.get('start_date'), 'start_date')
    end = parse_date(request.args.get('end_date'), 'end_date')
    if start is None or end is None:
        raise ValidationError("start_date and end_date are required")
    result = AttendanceService.student_summary(student_id, g.current_user, start, end)
    return jsonify(create_response(True, "Attendance summary", result))


# Locations

@attendance_bp.route('/locations', methods=['GET'])
@permission_required(Permission.VIEW_ATTENDANCE, Permission.MARK_SELF_ATTENDANCE,
                     Permission.MANAGE_ATTENDANCE_LOCATIONS)
def list_locations():
    locations = AttendanceService.list_locations(g.current_user,
                                                 parse_int(request.args.get('branch_id'), 'branch_id'),
                                                 parse_bool(request.args.get('active_only')))
    return jsonify(create_response(True, "Locations retrieved", locations))


@attendance_bp.route('/locations', methods=['POST'])
@permission_required(Permission.MANAGE_ATTENDANCE_LOCATIONS)
def create_location():
    data = load(AttendanceLocationSchema(), request.get_json(silent=True))
    location = AttendanceService.create_location(data, g.current_user)
    return jsonify(create_response(True, "Location created", location.to_dict())), 201


@attendance_bp.route('/locations/<int:location_id>', methods=['PUT'])
@permission_required(Permission.MANAGE_ATTENDANCE_LOCATIONS)
def update_location(location_id):
    data = load(AttendanceLocationSchema(), request.get_json(silent=True), partial=True)
    location = AttendanceService.update_location(location_id, data, g.current_user)
    return jsonify(create_response(True, "Location updated", location.to_dict()))


@attendance_bp.route('/locations/<int:location_id>', methods=['DELETE'])
@permission_required(Permission.MANAGE_ATTENDANCE_LOCATIONS)
def delete_location(location_id):
    AttendanceService.delete_location(location_id, g.current_user)
    return jsonify(create_response(True, "Location deleted"))


# Staff

@attendance_bp.route('/staff/check-in', methods=['POST'])
@permission_required(Permission.MARK_SELF_ATTENDANCE)
def check_in():
    data = load(CheckInSchema(), request.get_json(silent=True))
    record = AttendanceService.check_in(data, g.current_user)
    return jsonify(create_response(True, "Checked in", record.to_dict())), 201


@attendance_bp.route('/staff', methods=['GET'])
@permission_required(Permission.VIEW_ATTENDANCE)
def staff_records():
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'staff_id': parse_int(request.args.get('staff_id'), 'staff_id'),
        'from_date': parse_date(request.args.get('from_date'), 'from_date'),
        'to_date': parse_date(request.args.get('to_date'), 'to_date'),
    }
    return jsonify(create_response(True, "Staff attendance retrieved",
                                   AttendanceService.staff_records(g.current_user, filters)))


@attendance_bp.route('/staff/<int:staff_id>/summary', methods=['GET'])
@permission_required(Permission.VIEW_ATTENDANCE)
def staff_summary(staff_id):
    year = parse_int(request.args.get('year'), 'year') or date.today().year
    return jsonify(create_response(True, "Staff attendance summary",
                                   AttendanceService.staff_monthly_summary(staff_id, g.current_user, year)))
