"""
Attendance service: student daily marks and geofenced staff check-in
"""

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import extract, func

from schoolerp.models import (
    db, User, Student, Staff, StudentAttendance, AttendanceStatus,
    AttendanceLocation, StaffAttendance
)
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import ConflictError, NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info
from schoolerp.utils.validators import validate_date_range

EARTH_RADIUS_M = 6371000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def attendance_percentage(counts: Dict[str, int]) -> float:
    """(present + late + half days / 2) over marked days"""
    marked = sum(counts.values())
    if not marked:
        return 0
    attended = (counts.get(AttendanceStatus.PRESENT, 0) + counts.get(AttendanceStatus.LATE, 0)
                + counts.get(AttendanceStatus.HALF_DAY, 0) * 0.5)
    return round(attended / marked * 100, 2)


class AttendanceService:
    """Attendance service class"""

    # Students

    @staticmethod
    def mark(data: Dict[str, Any], user: User) -> StudentAttendance:
        """Mark (or re-mark) one student for one day"""
        AttendanceService._check_date(data['date'])
        student = TenantService.get_scoped(Student, data['student_id'], user, "Student")
        record = AttendanceService._upsert(student, data['date'], data, user)
        db.session.commit()
        log_info(f"Attendance {record.status} marked for student {student.id} on {record.date}")
        return record

    @staticmethod
    def bulk_mark(data: Dict[str, Any], user: User) -> List[StudentAttendance]:
        """Mark a whole class; nothing is written if any student is outside it"""
        day = data['date']
        AttendanceService._check_date(day)
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))

        query = Student.query.filter_by(branch_id=branch_id, class_name=data['class_name'], is_active=True)
        if data.get('section'):
            query = query.filter_by(section=data['section'])
        students = {s.id: s for s in query.all()}

        outside = [r['student_id'] for r in data['records'] if r['student_id'] not in students]
        if outside:
            raise ValidationError("Some students do not belong to this class",
                                  errors={'student_ids': outside})

        records = [AttendanceService._upsert(students[r['student_id']], day, r, user) for r in data['records']]
        db.session.commit()
        log_info(f"Attendance marked for {len(records)} students of {data['class_name']} on {day}")
        return records

    @staticmethod
    def class_attendance(user: User, class_name: str, day: date, section: Optional[str] = None,
                         branch_id: Optional[int] = None) -> Dict[str, Any]:
        """Every student of a class for a day; unmarked students show as PRESENT"""
        branch_id = TenantService.require_branch_id(user, branch_id)
        query = Student.query.filter_by(branch_id=branch_id, class_name=class_name, is_active=True)
        if section:
            query = query.filter_by(section=section)
        students = query.order_by(Student.roll_number, Student.first_name).all()

        marks = {}
        if students:
            marks = {r.student_id: r for r in StudentAttendance.query.filter(
                StudentAttendance.student_id.in_([s.id for s in students]),
                StudentAttendance.date == day,
            ).all()}

        rows = []
        counts = {status: 0 for status in AttendanceStatus.ALL}
        for student in students:
            record = marks.get(student.id)
            status = record.status if record else AttendanceStatus.PRESENT
            counts[status] += 1
            rows.append({
                'student_id': student.id,
                'student_name': student.full_name,
                'roll_number': student.roll_number,
                'status': status,
                'reason': record.reason if record else None,
                'is_marked': record is not None,
            })

        return {
            'date': day.isoformat(),
            'class_name': class_name,
            'section': section,
            'students': rows,
            'total': len(rows),
            'present': counts[AttendanceStatus.PRESENT],
            'absent': counts[AttendanceStatus.ABSENT],
            'late': counts[AttendanceStatus.LATE],
            'half_day': counts[AttendanceStatus.HALF_DAY],
            'excused': counts[AttendanceStatus.EXCUSED],
            'marked': len(marks),
        }

    @staticmethod
    def student_summary(student_id: int, user: User, start: date, end: date) -> Dict[str, Any]:
        validate_date_range(start, end)
        student = TenantService.get_scoped(Student, student_id, user, "Student")
        counts = {status: 0 for status in AttendanceStatus.ALL}
        rows = db.session.query(StudentAttendance.status, func.count(StudentAttendance.id)).filter(
            StudentAttendance.student_id == student.id,
            StudentAttendance.date >= start,
            StudentAttendance.date <= end,
        ).group_by(StudentAttendance.status).all()
        for status, count in rows:
            counts[status] = count

        return {
            'student_id': student.id,
            'student_name': student.full_name,
            'start_date': start.isoformat(),
            'end_date': end.isoformat(),
            'counts': counts,
            'marked_days': sum(counts.values()),
            'attendance_percentage': attendance_percentage(counts),
        }

    # Locations

    @staticmethod
    def create_location(data: Dict[str, Any], user: User) -> AttendanceLocation:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        location = AttendanceLocation(branch_id=branch_id, name=data['name'], latitude=data['latitude'],
                                      longitude=data['longitude'], radius=data.get('radius', 100.0),
                                      is_active=data.get('is_active', True))
        db.session.add(location)
        db.session.commit()
        log_info(f"Attendance location {location.name} created")
        return location

    @staticmethod
    def list_locations(user: User, branch_id: Optional[int] = None, active_only: bool = False):
        query = AttendanceLocation.query
        branch_id = TenantService.resolve_branch_id(user, branch_id)
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return [loc.to_dict() for loc in query.order_by(AttendanceLocation.name).all()]

    @staticmethod
    def update_location(location_id: int, data: Dict[str, Any], user: User) -> AttendanceLocation:
        location = TenantService.get_scoped(AttendanceLocation, location_id, user, "Location")
        for key in ('name', 'latitude', 'longitude', 'radius', 'is_active'):
            if key in data:
                setattr(location, key, data[key])
        db.session.commit()
        return location

    @staticmethod
    def delete_location(location_id: int, user: User) -> None:
        location = TenantService.get_scoped(AttendanceLocation, location_id, user, "Location")
        if location.records.count():
            raise ConflictError("Location has attendance records; deactivate it instead")
        db.session.delete(location)
        db.session.commit()
        log_info(f"Attendance location {location.name} deleted")

    # Staff

    @staticmethod
    def check_in(data: Dict[str, Any], user: User) -> StaffAttendance:
        """Record today's check-in of the current user's staff record"""
        staff = user.staff_profile
        if staff is None:
            raise ValidationError("Your account is not linked to a staff record")

        location = db.session.get(AttendanceLocation, data['location_id'])
        if location is None or location.branch_id != staff.branch_id:
            raise NotFoundError("Location not found")
        if not location.is_active:
            raise ValidationError("Location is not active")

        today = date.today()
        if StaffAttendance.query.filter_by(staff_id=staff.id, date=today).first():
            raise ConflictError("Attendance already marked for today")

        distance = haversine_distance(data['latitude'], data['longitude'],
                                      location.latitude, location.longitude)
        if distance > location.radius:
            raise ValidationError(
                f"You are {round(distance)} m away from {location.name}; "
                f"check-in is allowed within {round(location.radius)} m")

        record = StaffAttendance(staff_id=staff.id, location_id=location.id, date=today,
                                 check_in_time=datetime.utcnow(), latitude=data['latitude'],
                                 longitude=data['longitude'], distance=distance)
        db.session.add(record)
        db.session.commit()
        log_info(f"Staff {staff.id} checked in at {location.name} ({round(distance)} m)")
        return record

    @staticmethod
    def staff_records(user: User, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = StaffAttendance.query.join(Staff, StaffAttendance.staff_id == Staff.id)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        if filters.get('staff_id'):
            query = query.filter(StaffAttendance.staff_id == filters['staff_id'])
        if filters.get('from_date'):
            query = query.filter(StaffAttendance.date >= filters['from_date'])
        if filters.get('to_date'):
            query = query.filter(StaffAttendance.date <= filters['to_date'])
        return [r.to_dict() for r in query.order_by(StaffAttendance.date.desc()).all()]

    @staticmethod
    def staff_monthly_summary(staff_id: int, user: User, year: int) -> Dict[str, Any]:
        staff = TenantService.get_scoped(Staff, staff_id, user, "Staff")
        rows = db.session.query(
            extract('month', StaffAttendance.date), func.count(StaffAttendance.id)
        ).filter(
            StaffAttendance.staff_id == staff.id,
            extract('year', StaffAttendance.date) == year,
        ).group_by(extract('month', StaffAttendance.date)).all()

        months = {month: 0 for month in range(1, 13)}
        for month, count in rows:
            months[int(month)] = count
        return {
            'staff_id': staff.id,
            'staff_name': staff.full_name,
            'year': year,
            'days_present': months,
            'total_days_present': sum(months.values()),
        }

    @staticmethod
    def _check_date(day: date) -> None:
        if day > date.today():
            raise ValidationError("Cannot mark attendance for a future date")

    @staticmethod
    def _upsert(student: Student, day: date, data: Dict[str, Any], user: User) -> StudentAttendance:
        record = StudentAttendance.query.filter_by(student_id=student.id, date=day).first()
        if record is None:
            record = StudentAttendance(student_id=student.id, branch_id=student.branch_id, date=day)
            db.session.add(record)
        record.status = data['status']
        record.reason = data.get('reason')
        record.notes = data.get('notes')
        record.marked_by_id = user.id
        return record
