"""
Student attendance marks and geofenced staff check-in
"""

from datetime import date, timedelta

import pytest

from schoolerp.services.attendance_service import attendance_percentage, haversine_distance

SCHOOL = (12.9716, 77.5946)


def test_haversine_distance():
    assert haversine_distance(*SCHOOL, *SCHOOL) == 0
    # one thousandth of a degree of latitude is about 111 m
    assert 110 < haversine_distance(12.9716, 77.5946, 12.9726, 77.5946) < 112


def test_attendance_percentage_counts_half_days():
    counts = {'PRESENT': 6, 'LATE': 1, 'HALF_DAY': 2, 'ABSENT': 1, 'EXCUSED': 0}
    assert attendance_percentage(counts) == 80.0
    assert attendance_percentage({}) == 0


def test_mark_and_remark_student(client, teacher, make_student):
    student_id = make_student()
    today = date.today().isoformat()
    payload = {'student_id': student_id, 'date': today, 'status': 'ABSENT', 'reason': 'Fever'}
    assert client.post('/api/attendance/students', headers=teacher.headers, json=payload).status_code == 200

    payload['status'] = 'LATE'
    response = client.post('/api/attendance/students', headers=teacher.headers, json=payload)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'LATE'

    summary = client.get(f'/api/attendance/students/{student_id}/summary?start_date={today}&end_date={today}',
                         headers=teacher.headers).get_json()['data']
    assert summary['marked_days'] == 1
    assert summary['counts']['LATE'] == 1


def test_future_date_is_refused(client, teacher, make_student):
    student_id = make_student()
    response = client.post('/api/attendance/students', headers=teacher.headers, json={
        'student_id': student_id,
        'date': (date.today() + timedelta(days=1)).isoformat(),
        'status': 'PRESENT',
    })
    assert response.status_code == 400


def test_bulk_mark_rejects_students_outside_class(client, teacher, make_student):
    in_class = make_student(class_name='5')
    other = make_student(class_name='6')
    response = client.post('/api/attendance/students/bulk', headers=teacher.headers, json={
        'class_name': '5',
        'date': date.today().isoformat(),
        'records': [
            {'student_id': in_class, 'status': 'PRESENT'},
            {'student_id': other, 'status': 'ABSENT'},
        ],
    })
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'student_ids': [other]}


def test_class_view_defaults_unmarked_to_present(client, teacher, make_student):
    first = make_student(first_name='Asha')
    make_student(first_name='Bala')
    today = date.today().isoformat()
    client.post('/api/attendance/students/bulk', headers=teacher.headers, json={
        'class_name': '5',
        'section': 'A',
        'date': today,
        'records': [{'student_id': first, 'status': 'ABSENT'}],
    })

    view = client.get(f'/api/attendance/class?class_name=5&section=A&date={today}',
                      headers=teacher.headers).get_json()['data']
    assert view['total'] == 2
    assert view['absent'] == 1
    assert view['present'] == 1
    assert view['marked'] == 1


def test_students_of_other_branch_are_hidden(client, teacher, make_student):
    student_id = make_student(branch='NORTH')
    response = client.post('/api/attendance/students', headers=teacher.headers, json={
        'student_id': student_id,
        'date': date.today().isoformat(),
        'status': 'PRESENT',
    })
    assert response.status_code == 404


@pytest.fixture
def location(client, principal):
    response = client.post('/api/attendance/locations', headers=principal.headers, json={
        'name': 'Main gate',
        'latitude': SCHOOL[0],
        'longitude': SCHOOL[1],
        'radius': 150,
    })
    assert response.status_code == 201
    return response.get_json()['data']


def test_check_in_within_radius(client, teacher, location):
    response = client.post('/api/attendance/staff/check-in', headers=teacher.headers, json={
        'location_id': location['id'],
        'latitude': 12.9720,
        'longitude': 77.5946,
    })
    assert response.status_code == 201

    response = client.post('/api/attendance/staff/check-in', headers=teacher.headers, json={
        'location_id': location['id'],
        'latitude': 12.9720,
        'longitude': 77.5946,
    })
    assert response.status_code == 409


def test_check_in_outside_radius(client, teacher, location):
    response = client.post('/api/attendance/staff/check-in', headers=teacher.headers, json={
        'location_id': location['id'],
        'latitude': 12.9816,
        'longitude': 77.5946,
    })
    assert response.status_code == 400
    assert 'away from Main gate' in response.get_json()['message']


def test_check_in_requires_staff_profile(client, make_user, location):
    user = make_user('teacher')
    response = client.post('/api/attendance/staff/check-in', headers=user.headers, json={
        'location_id': location['id'],
        'latitude': SCHOOL[0],
        'longitude': SCHOOL[1],
    })
    assert response.status_code == 400


def test_location_in_use_cannot_be_deleted(client, principal, teacher, location):
    client.post('/api/attendance/staff/check-in', headers=teacher.headers, json={
        'location_id': location['id'],
        'latitude': SCHOOL[0],
        'longitude': SCHOOL[1],
    })
    response = client.delete(f"/api/attendance/locations/{location['id']}", headers=principal.headers)
    assert response.status_code == 409


def test_staff_monthly_summary(client, principal, teacher, location):
    client.post('/api/attendance/staff/check-in', headers=teacher.headers, json={
        'location_id': location['id'],
        'latitude': SCHOOL[0],
        'longitude': SCHOOL[1],
    })
    today = date.today()
    summary = client.get(f'/api/attendance/staff/{teacher.staff_id}/summary?year={today.year}',
                         headers=principal.headers).get_json()['data']
    assert summary['total_days_present'] == 1
    assert summary['days_present'][str(today.month)] == 1
