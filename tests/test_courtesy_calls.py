import pytest

from schoolerp.models import StaffType


@pytest.fixture
def student(make_student):
    return make_student(class_name='7', section='B')


def _record(client, user, student_id, **extra):
    body = {'student_id': student_id, 'purpose': 'Progress check', 'feedback': 'Parents are happy'}
    body.update(extra)
    return client.post('/api/courtesy-calls', headers=user.headers, json=body)


def test_teacher_call_keeps_privacy_choice(client, teacher, student):
    response = _record(client, teacher, student)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['caller_type'] == 'TEACHER'
    assert data['is_private'] is False
    assert data['class_name'] == '7'


def test_head_call_is_always_private(client, principal, student):
    response = _record(client, principal, student, is_private=False)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['caller_type'] == 'HEAD'
    assert data['is_private'] is True

    update = client.put(f"/api/courtesy-calls/{data['id']}", headers=principal.headers,
                        json={'is_private': False})
    assert update.status_code == 400


def test_private_calls_hidden_from_other_teachers(client, make_user, teacher, principal, student):
    _record(client, teacher, student, feedback='Shared note')
    _record(client, teacher, student, feedback='Private note', is_private=True)
    _record(client, principal, student, feedback='Head note')
    colleague = make_user('teacher', staff_type=StaffType.TEACHER)

    response = client.get(f'/api/courtesy-calls/students/{student}', headers=colleague.headers)
    assert response.status_code == 200
    feedback = sorted(c['feedback'] or '' for c in response.get_json()['data']['feedback'])
    assert feedback == ['', '', 'Shared note']

    own = client.get(f'/api/courtesy-calls/students/{student}', headers=teacher.headers)
    visible = sorted(c['feedback'] or '' for c in own.get_json()['data']['feedback'])
    assert visible == ['', 'Private note', 'Shared note']

    head = client.get(f'/api/courtesy-calls/students/{student}', headers=principal.headers)
    assert all(c['feedback'] for c in head.get_json()['data']['feedback'])


def test_teacher_lists_only_own_calls(client, teacher, principal, student):
    _record(client, teacher, student)
    _record(client, principal, student)

    mine = client.get('/api/courtesy-calls', headers=teacher.headers).get_json()['data']
    assert mine['total'] == 1
    assert mine['items'][0]['caller_type'] == 'TEACHER'

    everything = client.get('/api/courtesy-calls', headers=principal.headers).get_json()['data']
    assert everything['total'] == 2

    heads = client.get('/api/courtesy-calls?caller_type=HEAD', headers=principal.headers).get_json()['data']
    assert heads['total'] == 1


def test_feedback_of_another_caller_is_not_found(client, teacher, principal, student):
    head_call = _record(client, principal, student).get_json()['data']
    response = client.get(f"/api/courtesy-calls/{head_call['id']}", headers=teacher.headers)
    assert response.status_code == 404


def test_only_author_or_head_edits(client, make_user, teacher, principal, student):
    call = _record(client, teacher, student).get_json()['data']
    colleague = make_user('teacher', staff_type=StaffType.TEACHER)

    denied = client.put(f"/api/courtesy-calls/{call['id']}", headers=colleague.headers,
                        json={'feedback': 'Changed'})
    assert denied.status_code == 403

    edited = client.put(f"/api/courtesy-calls/{call['id']}", headers=teacher.headers,
                        json={'follow_up': 'Call again next month'})
    assert edited.status_code == 200
    assert edited.get_json()['data']['follow_up'] == 'Call again next month'

    by_head = client.put(f"/api/courtesy-calls/{call['id']}", headers=principal.headers,
                         json={'is_private': True})
    assert by_head.get_json()['data']['is_private'] is True


def test_delete_needs_permission(client, teacher, principal, student):
    call = _record(client, teacher, student).get_json()['data']
    assert client.delete(f"/api/courtesy-calls/{call['id']}", headers=teacher.headers).status_code == 403
    assert client.delete(f"/api/courtesy-calls/{call['id']}", headers=principal.headers).status_code == 200
    assert client.get(f"/api/courtesy-calls/{call['id']}", headers=principal.headers).status_code == 404


def test_stats(client, teacher, principal, student, make_student):
    other = make_student(first_name='Other')
    _record(client, teacher, student)
    _record(client, teacher, other)
    _record(client, principal, student)

    stats = client.get('/api/courtesy-calls/stats', headers=principal.headers).get_json()['data']
    assert stats['total'] == 3
    assert stats['this_month'] == 3
    assert stats['by_caller_type'] == {'TEACHER': 2, 'HEAD': 1}
    assert stats['students_contacted'] == 2

    own = client.get('/api/courtesy-calls/stats', headers=teacher.headers).get_json()['data']
    assert own['total'] == 2
    assert own['by_caller_type']['HEAD'] == 0


def test_user_without_staff_profile_cannot_record(client, make_user, student):
    user = make_user('teacher')
    response = _record(client, user, student)
    assert response.status_code == 403


def test_user_without_feedback_permission_is_refused(client, make_user, student):
    officer = make_user('admission_officer', staff_type=StaffType.EMPLOYEE)
    assert client.get('/api/courtesy-calls', headers=officer.headers).status_code == 403


def test_other_branch_student(client, teacher, make_student):
    north_student = make_student(branch='NORTH')
    assert _record(client, teacher, north_student).status_code == 404
