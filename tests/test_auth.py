"""
Login, tokens, roles and branch scoping
"""

from sqlalchemy.exc import OperationalError

from schoolerp.models.people import StaffType


def test_login_returns_token_and_permissions(app, client):
    response = client.post('/api/auth/login', json={
        'email': app.config['SUPER_ADMIN_EMAIL'],
        'password': app.config['SUPER_ADMIN_PASSWORD'],
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['ok'] is True
    assert body['data']['token']
    assert 'manage_roles' in body['data']['user']['permissions']


def test_login_with_wrong_password(app, client):
    response = client.post('/api/auth/login', json={
        'email': app.config['SUPER_ADMIN_EMAIL'],
        'password': 'wrong-password',
    })
    assert response.status_code == 401
    assert response.get_json() == {'ok': False, 'message': 'Invalid email or password'}


def test_login_requires_fields(client):
    response = client.post('/api/auth/login', json={'email': 'not-an-email'})
    assert response.status_code == 400
    body = response.get_json()
    assert 'email' in body['errors']
    assert 'password' in body['errors']


def test_me_requires_authentication(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json()['ok'] is False


def test_invalid_token_is_rejected(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid token'


def test_me_lists_role_permissions(client, teacher):
    response = client.get('/api/auth/me', headers=teacher.headers)
    assert response.status_code == 200
    permissions = response.get_json()['data']['permissions']
    assert 'mark_attendance' in permissions
    assert 'manage_roles' not in permissions


def test_permission_required_refuses_missing_permission(client, teacher):
    response = client.get('/api/auth/roles', headers=teacher.headers)
    assert response.status_code == 403


def test_create_role_and_assign(client, admin, teacher):
    response = client.post('/api/auth/roles', headers=admin.headers, json={
        'name': 'librarian',
        'description': 'Library desk',
        'permissions': ['view_students'],
    })
    assert response.status_code == 201
    role_id = response.get_json()['data']['id']

    response = client.post(f'/api/auth/users/{teacher.id}/roles', headers=admin.headers,
                           json={'role_id': role_id})
    assert response.status_code == 200

    response = client.post('/api/auth/roles', headers=admin.headers, json={'name': 'librarian'})
    assert response.status_code == 409


def test_role_rejects_unknown_permission(client, admin):
    response = client.post('/api/auth/roles', headers=admin.headers, json={
        'name': 'odd_role',
        'permissions': ['fly_to_the_moon'],
    })
    assert response.status_code == 400


def test_system_role_cannot_be_deleted(client, admin):
    roles = client.get('/api/auth/roles', headers=admin.headers).get_json()['data']
    teacher_role = next(r for r in roles if r['name'] == 'teacher')
    response = client.delete(f"/api/auth/roles/{teacher_role['id']}", headers=admin.headers)
    assert response.status_code == 400


def test_only_super_admin_creates_super_admins(client, make_user, branches):
    principal = make_user('principal')
    admin_like = make_user('super_admin')
    response = client.post('/api/auth/users', headers=admin_like.headers, json={
        'email': 'new.admin@school.test',
        'password': 'Password@123',
        'first_name': 'New',
        'last_name': 'Admin',
        'is_super_admin': True,
    })
    assert response.status_code == 201

    response = client.post('/api/auth/users', headers=principal.headers, json={
        'email': 'another@school.test',
        'password': 'Password@123',
        'first_name': 'Another',
        'last_name': 'User',
    })
    assert response.status_code == 403


def test_branch_creation_is_super_admin_only(client, admin, principal):
    response = client.post('/api/tenants/branches', headers=admin.headers,
                           json={'name': 'East Campus', 'code': 'EAST'})
    assert response.status_code == 201

    response = client.post('/api/tenants/branches', headers=admin.headers,
                           json={'name': 'Duplicate', 'code': 'EAST'})
    assert response.status_code == 409

    response = client.post('/api/tenants/branches', headers=principal.headers,
                           json={'name': 'West Campus', 'code': 'WEST'})
    assert response.status_code == 403


def test_branch_code_must_be_upper_case(client, admin):
    response = client.post('/api/tenants/branches', headers=admin.headers,
                           json={'name': 'Lower', 'code': 'lower'})
    assert response.status_code == 400
    assert 'code' in response.get_json()['errors']


def test_non_admin_sees_only_own_branch(client, principal, branches):
    response = client.get('/api/tenants/branches', headers=principal.headers)
    codes = [b['code'] for b in response.get_json()['data']]
    assert codes == ['MAIN']

    response = client.get(f"/api/tenants/branches/{branches['NORTH']}", headers=principal.headers)
    assert response.status_code == 404


def test_explicit_foreign_branch_is_forbidden(client, principal, branches):
    response = client.get(f"/api/people/students?branch_id={branches['NORTH']}", headers=principal.headers)
    assert response.status_code == 403


def test_setting_current_session_unsets_others(client, admin, branches):
    branch_id = branches['MAIN']
    response = client.post(f'/api/tenants/branches/{branch_id}/sessions', headers=admin.headers, json={
        'name': '2026-27',
        'start_date': '2026-04-01',
        'end_date': '2027-03-31',
    })
    assert response.status_code == 201
    session_id = response.get_json()['data']['id']

    response = client.post(f'/api/tenants/sessions/{session_id}/current', headers=admin.headers)
    assert response.status_code == 200

    sessions = client.get(f'/api/tenants/branches/{branch_id}/sessions', headers=admin.headers).get_json()['data']
    current = [s['name'] for s in sessions if s['is_current']]
    assert current == ['2026-27']


def test_session_dates_are_validated(client, admin, branches):
    response = client.post(f"/api/tenants/branches/{branches['MAIN']}/sessions", headers=admin.headers, json={
        'name': 'bad',
        'start_date': '2026-04-01',
        'end_date': '2025-03-31',
    })
    assert response.status_code == 400


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['data']['database'] == 'connected'


def test_unknown_route_uses_json_envelope(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert response.get_json()['ok'] is False


def test_staff_profile_linked_to_user(client, principal, make_user):
    user = make_user('teacher')
    response = client.post('/api/people/staff', headers=principal.headers, json={
        'staff_type': StaffType.TEACHER,
        'employee_code': 'T-100',
        'first_name': 'Meera',
        'last_name': 'Iyer',
    })
    assert response.status_code == 201
    staff_id = response.get_json()['data']['id']

    response = client.put(f'/api/people/staff/{staff_id}/user', headers=principal.headers,
                          json={'user_id': user.id})
    assert response.status_code == 200
    assert response.get_json()['data']['user_id'] == user.id


def _role_ids(client, admin):
    return {r['name']: r['id'] for r in client.get('/api/auth/roles', headers=admin.headers).get_json()['data']}


def _role_manager(client, admin, make_user):
    response = client.post('/api/auth/roles', headers=admin.headers,
                           json={'name': 'hr_admin', 'permissions': ['manage_roles']})
    assert response.status_code == 201
    return make_user('hr_admin')


def test_role_manager_cannot_make_itself_super_admin(client, admin, make_user):
    manager = _role_manager(client, admin, make_user)
    roles = _role_ids(client, admin)

    response = client.post(f'/api/auth/users/{manager.id}/roles', headers=manager.headers,
                           json={'role_id': roles['super_admin']})
    assert response.status_code == 403

    response = client.post('/api/tenants/branches', headers=manager.headers,
                           json={'name': 'West Campus', 'code': 'WEST'})
    assert response.status_code == 403


def test_role_manager_cannot_grant_permissions_it_lacks(client, admin, make_user):
    manager = _role_manager(client, admin, make_user)
    roles = _role_ids(client, admin)

    response = client.post('/api/auth/roles', headers=manager.headers,
                           json={'name': 'campus_builder', 'permissions': ['manage_branches']})
    assert response.status_code == 403

    response = client.put(f"/api/auth/roles/{roles['hr_admin']}/permissions", headers=manager.headers,
                          json={'permissions': ['manage_roles', 'manage_branches']})
    assert response.status_code == 403

    response = client.post(f'/api/auth/users/{manager.id}/roles', headers=manager.headers,
                           json={'role_id': roles['principal']})
    assert response.status_code == 403


def test_system_role_permissions_need_super_admin(client, admin, make_user):
    manager = _role_manager(client, admin, make_user)
    roles = _role_ids(client, admin)
    url = f"/api/auth/roles/{roles['teacher']}/permissions"

    assert client.put(url, headers=manager.headers, json={'permissions': ['manage_roles']}).status_code == 403

    response = client.put(url, headers=admin.headers, json={'permissions': ['view_students', 'mark_attendance']})
    assert response.status_code == 200


def test_role_assignment_is_branch_scoped(client, admin, make_user):
    manager = _role_manager(client, admin, make_user)
    roles = _role_ids(client, admin)
    north_user = make_user(branch='NORTH')
    main_user = make_user()

    response = client.post(f'/api/auth/users/{north_user.id}/roles', headers=manager.headers,
                           json={'role_id': roles['hr_admin']})
    assert response.status_code == 404

    response = client.post(f'/api/auth/users/{main_user.id}/roles', headers=manager.headers,
                           json={'role_id': roles['hr_admin']})
    assert response.status_code == 200

    response = client.delete(f"/api/auth/users/{north_user.id}/roles/{roles['hr_admin']}", headers=manager.headers)
    assert response.status_code == 404


def test_health_reports_database_outage(client, monkeypatch):
    monkeypatch.setattr('schoolerp.routes.health_routes.check_connection', lambda: False)
    response = client.get('/api/health')
    assert response.status_code == 500
    assert response.get_json() == {'ok': False, 'message': 'Database unavailable'}


def test_failed_statement_becomes_database_error(client, admin, monkeypatch):
    def broken():
        raise OperationalError('SELECT 1', {}, Exception('disk I/O error'))

    monkeypatch.setattr('schoolerp.services.rbac_service.RBACService.list_roles', staticmethod(broken))
    response = client.get('/api/auth/roles', headers=admin.headers)
    assert response.status_code == 500
    assert response.get_json() == {'ok': False, 'message': 'Database error'}
