"""
Leave policies, the balance ledger and the application workflow
"""

from datetime import date, timedelta

import pytest


def future(days):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def policy(client, principal):
    response = client.post('/api/leave/policies', headers=principal.headers, json={
        'name': 'Casual Leave',
        'max_days_per_year': 5,
        'applicable_roles': ['Teacher'],
    })
    assert response.status_code == 201
    return response.get_json()['data']


def apply(client, user, policy, start, end, **extra):
    return client.post('/api/leave/applications', headers=user.headers, json={
        'policy_id': policy['id'],
        'start_date': start,
        'end_date': end,
        'reason': 'Family function out of town',
        **extra,
    })


def balance_of(client, user, staff_id, year):
    balances = client.get(f'/api/leave/balances/{staff_id}?year={year}', headers=user.headers).get_json()['data']
    return balances[0] if balances else None


def test_initialize_balances_for_policy(client, principal, teacher, policy):
    response = client.post('/api/leave/balances/initialize', headers=principal.headers,
                           json={'policy_id': policy['id']})
    assert response.status_code == 200
    # only the teacher matches the applicable roles
    assert response.get_json()['data'] == {'initialized': 1, 'skipped': 0}

    response = client.post('/api/leave/balances/initialize', headers=principal.headers,
                           json={'policy_id': policy['id']})
    assert response.get_json()['data'] == {'initialized': 0, 'skipped': 1}


def test_initialize_requires_target(client, principal):
    response = client.post('/api/leave/balances/initialize', headers=principal.headers, json={})
    assert response.status_code == 400


def test_apply_and_approve_debits_balance(client, principal, teacher, policy):
    start = date.today() + timedelta(days=10)
    response = apply(client, teacher, policy, start.isoformat(), (start + timedelta(days=2)).isoformat())
    assert response.status_code == 201
    application = response.get_json()['data']
    assert application['status'] == 'PENDING'
    assert application['days'] == 3

    response = client.put(f"/api/leave/applications/{application['id']}/decision", headers=principal.headers,
                          json={'status': 'APPROVED', 'comments': 'Enjoy'})
    assert response.status_code == 200

    balance = balance_of(client, teacher, teacher.staff_id, start.year)
    assert balance['used_days'] == 3
    assert balance['remaining_days'] == 2
    assert balance['used_days'] + balance['remaining_days'] == balance['total_days']


def test_reject_leaves_balance_untouched(client, principal, teacher, policy):
    start = date.today() + timedelta(days=10)
    application = apply(client, teacher, policy, start.isoformat(), start.isoformat()).get_json()['data']
    client.put(f"/api/leave/applications/{application['id']}/decision", headers=principal.headers,
               json={'status': 'REJECTED'})

    balance = balance_of(client, teacher, teacher.staff_id, start.year)
    assert balance['remaining_days'] == 5


def test_cannot_decide_twice(client, principal, teacher, policy):
    application = apply(client, teacher, policy, future(5), future(5)).get_json()['data']
    url = f"/api/leave/applications/{application['id']}/decision"
    assert client.put(url, headers=principal.headers, json={'status': 'APPROVED'}).status_code == 200
    assert client.put(url, headers=principal.headers, json={'status': 'REJECTED'}).status_code == 400


def test_request_over_balance_is_refused(client, teacher, policy):
    response = apply(client, teacher, policy, future(10), future(15))
    assert response.status_code == 400
    assert 'Insufficient leave balance' in response.get_json()['message']


def test_overlapping_application_is_refused(client, teacher, policy):
    assert apply(client, teacher, policy, future(10), future(11)).status_code == 201
    response = apply(client, teacher, policy, future(11), future(12))
    assert response.status_code == 409


def test_past_start_is_refused(client, teacher, policy):
    response = apply(client, teacher, policy, (date.today() - timedelta(days=1)).isoformat(), future(1))
    assert response.status_code == 400


def test_short_reason_is_refused(client, teacher, policy):
    response = apply(client, teacher, policy, future(3), future(3), reason='tired')
    assert response.status_code == 400
    assert 'reason' in response.get_json()['errors']


def test_policy_must_apply_to_staff_type(client, principal, policy):
    # the principal's staff profile is an Employee
    response = apply(client, principal, policy, future(3), future(3))
    assert response.status_code == 400


def test_cancel_approved_restores_balance(client, principal, teacher, policy):
    start = date.today() + timedelta(days=20)
    application = apply(client, teacher, policy, start.isoformat(),
                        (start + timedelta(days=1)).isoformat()).get_json()['data']
    client.put(f"/api/leave/applications/{application['id']}/decision", headers=principal.headers,
               json={'status': 'APPROVED'})

    response = client.post(f"/api/leave/applications/{application['id']}/cancel", headers=teacher.headers)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'CANCELLED'

    balance = balance_of(client, teacher, teacher.staff_id, start.year)
    assert balance['used_days'] == 0
    assert balance['remaining_days'] == 5


def test_other_staff_cannot_cancel(client, teacher, make_user, policy):
    application = apply(client, teacher, policy, future(4), future(4)).get_json()['data']
    colleague = make_user('teacher', staff_type='Teacher')
    response = client.post(f"/api/leave/applications/{application['id']}/cancel", headers=colleague.headers)
    assert response.status_code == 403


def test_bulk_decision_is_all_or_nothing(client, principal, teacher, make_user, policy):
    colleague = make_user('teacher', staff_type='Teacher')
    first = apply(client, teacher, policy, future(10), future(13)).get_json()['data']
    second = apply(client, colleague, policy, future(10), future(10)).get_json()['data']

    response = client.put('/api/leave/applications/bulk-decision', headers=principal.headers, json={
        'application_ids': [first['id'], second['id'], 9999],
        'status': 'APPROVED',
    })
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'application_ids': [9999]}

    response = client.put('/api/leave/applications/bulk-decision', headers=principal.headers, json={
        'application_ids': [first['id'], second['id']],
        'status': 'APPROVED',
    })
    assert response.status_code == 200

    listing = client.get('/api/leave/applications?status=APPROVED', headers=principal.headers).get_json()['data']
    assert listing['total'] == 2


def test_staff_without_view_permission_sees_own_applications(client, teacher, make_user, policy):
    plain = make_user(staff_type='Teacher')
    apply(client, teacher, policy, future(3), future(3))
    apply(client, plain, policy, future(3), future(3))

    listing = client.get('/api/leave/applications', headers=plain.headers).get_json()['data']
    assert listing['total'] == 1
    assert listing['items'][0]['staff_id'] == plain.staff_id

    listing = client.get('/api/leave/applications', headers=teacher.headers).get_json()['data']
    assert listing['total'] == 2


def test_policy_with_active_applications_needs_force(client, principal, teacher, policy):
    apply(client, teacher, policy, future(3), future(3))
    url = f"/api/leave/policies/{policy['id']}"
    assert client.delete(url, headers=principal.headers).status_code == 409
    assert client.delete(f'{url}?force=true', headers=principal.headers).status_code == 200


def test_policy_update_adjusts_balances(client, principal, teacher, policy):
    client.post('/api/leave/balances/initialize', headers=principal.headers, json={'policy_id': policy['id']})
    response = client.put(f"/api/leave/policies/{policy['id']}", headers=principal.headers, json={
        'max_days_per_year': 8,
        'adjust_existing_balances': True,
    })
    assert response.status_code == 200

    balance = balance_of(client, teacher, teacher.staff_id, date.today().year)
    assert balance['total_days'] == 8
    assert balance['remaining_days'] == 8


def test_analytics(client, principal, teacher, policy):
    apply(client, teacher, policy, future(3), future(3))
    response = client.get('/api/leave/analytics', headers=principal.headers)
    assert response.status_code == 200
    assert response.get_json()['data']
