"""
Admissions: lead numbering, the status machine and the pipeline records
"""

from datetime import date, timedelta

import pytest

from schoolerp.models.admission import AdmissionStatus as S
from schoolerp.services.admission_workflow import (
    VIA_ARCHIVE, VIA_ENROLLMENT, can_transition, transition_error
)


@pytest.fixture
def officer(make_user):
    return make_user('admission_officer')


def create_lead(client, user, lead_data, **extra):
    response = client.post('/api/admissions/leads', headers=user.headers, json={**lead_data, **extra})
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


# Status machine

def test_forward_moves_are_allowed():
    assert can_transition(S.NEW, S.CONTACTED)
    assert can_transition(S.CONTACTED, S.TOUR_SCHEDULED)
    assert can_transition(S.ENGAGED, S.CONTACTED)
    assert can_transition(S.APPLICATION_RECEIVED, S.OFFERED)


def test_backward_moves_are_refused():
    assert not can_transition(S.OFFERED, S.CONTACTED)
    assert "back" in transition_error(S.DECISION_PENDING, S.APPLICATION_SENT)


def test_exits_from_any_open_status():
    assert can_transition(S.NEW, S.REJECTED)
    assert can_transition(S.ACCEPTED, S.CLOSED_LOST)


def test_terminal_statuses_are_final():
    for status in (S.ENROLLED, S.REJECTED, S.CLOSED_LOST):
        assert not can_transition(status, S.CONTACTED)


def test_enrollment_and_archive_need_their_operations():
    assert not can_transition(S.OFFERED, S.ENROLLED)
    assert can_transition(S.OFFERED, S.ENROLLED, via=VIA_ENROLLMENT)
    assert not can_transition(S.NEW, S.ENROLLED, via=VIA_ENROLLMENT)
    assert not can_transition(S.NEW, S.ARCHIVED)
    assert can_transition(S.REJECTED, S.ARCHIVED, via=VIA_ARCHIVE)


# Numbering

def test_registration_numbers_are_sequential_per_session(client, officer, lead_data):
    numbers = [create_lead(client, officer, lead_data)['registration_number'] for _ in range(3)]
    assert numbers == ['TSHMAIN-2025-26-0001', 'TSHMAIN-2025-26-0002', 'TSHMAIN-2025-26-0003']


def test_archived_lead_frees_its_number_without_reuse(client, officer, lead_data):
    leads = [create_lead(client, officer, lead_data) for _ in range(3)]

    response = client.post(f"/api/admissions/leads/{leads[0]['id']}/archive", headers=officer.headers)
    assert response.status_code == 200
    assert response.get_json()['data']['registration_number'] == 'TSHMAIN-2025-26-0001 (Archived)'

    assert create_lead(client, officer, lead_data)['registration_number'] == 'TSHMAIN-2025-26-0004'


def test_public_inquiry_registers_online_lead(client, branches, lead_data):
    response = client.post('/api/admissions/inquiry', json={**lead_data, 'branch_id': branches['MAIN']})
    assert response.status_code == 201
    assert response.get_json()['data']['registration_number'] == 'TSHMAIN-2025-26-0001'


def test_public_inquiry_without_session_uses_year(client, branches, lead_data):
    response = client.post('/api/admissions/inquiry', json={**lead_data, 'branch_id': branches['NORTH']})
    assert response.status_code == 201
    number = response.get_json()['data']['registration_number']
    assert number == f'TSHNORTH-{date.today().year}-0001'


def test_public_inquiry_requires_branch(client, lead_data):
    response = client.post('/api/admissions/inquiry', json=lead_data)
    assert response.status_code == 400
    assert 'branch_id' in response.get_json()['errors']


# Leads

def test_staff_lead_is_offline(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    assert lead['status'] == S.NEW
    assert lead['registration_source'] == 'OFFLINE'


def test_interaction_moves_new_lead_to_contacted(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    response = client.post(f"/api/admissions/leads/{lead['id']}/interactions", headers=officer.headers,
                           json={'type': 'CALL', 'description': 'Discussed fee structure'})
    assert response.status_code == 201

    detail = client.get(f"/api/admissions/leads/{lead['id']}", headers=officer.headers).get_json()['data']
    assert detail['status'] == S.CONTACTED
    assert detail['last_contact_date'] is not None


def test_status_cannot_move_backwards(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    url = f"/api/admissions/leads/{lead['id']}/status"
    assert client.put(url, headers=officer.headers, json={'status': S.TOUR_COMPLETED}).status_code == 200

    response = client.put(url, headers=officer.headers, json={'status': S.CONTACTED})
    assert response.status_code == 409
    assert response.get_json()['ok'] is False


def test_status_route_cannot_enroll(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    response = client.put(f"/api/admissions/leads/{lead['id']}/status", headers=officer.headers,
                          json={'status': S.ENROLLED})
    assert response.status_code == 409


def test_archived_lead_is_read_only(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    client.post(f"/api/admissions/leads/{lead['id']}/archive", headers=officer.headers)

    response = client.put(f"/api/admissions/leads/{lead['id']}", headers=officer.headers,
                          json={'notes': 'late change'})
    assert response.status_code == 400

    response = client.post(f"/api/admissions/leads/{lead['id']}/archive", headers=officer.headers)
    assert response.status_code == 400


def test_leads_of_other_branches_are_hidden(client, officer, make_user, lead_data):
    lead = create_lead(client, officer, lead_data)
    outsider = make_user('admission_officer', branch='NORTH')

    response = client.get(f"/api/admissions/leads/{lead['id']}", headers=outsider.headers)
    assert response.status_code == 404

    listing = client.get('/api/admissions/leads', headers=outsider.headers).get_json()['data']
    assert listing['total'] == 0


def test_lead_search(client, officer, lead_data):
    create_lead(client, officer, lead_data)
    create_lead(client, officer, {**lead_data, 'first_name': 'Diya', 'parent_phone': '9123456780'})

    listing = client.get('/api/admissions/leads?search=Diya', headers=officer.headers).get_json()['data']
    assert [lead['first_name'] for lead in listing['items']] == ['Diya']


def test_source_in_use_cannot_be_deleted(client, officer, lead_data):
    response = client.post('/api/admissions/sources', headers=officer.headers, json={'name': 'Newspaper'})
    assert response.status_code == 201
    source_id = response.get_json()['data']['id']
    create_lead(client, officer, lead_data, source_id=source_id)

    response = client.delete(f'/api/admissions/sources/{source_id}', headers=officer.headers)
    assert response.status_code == 409


# Pipeline

def test_full_pipeline_to_student(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    year = date.today().year

    response = client.post('/api/admissions/applications', headers=officer.headers, json={'lead_id': lead['id']})
    assert response.status_code == 201
    application = response.get_json()['data']
    assert application['application_number'] == f'APP-MAIN-{year}-0001'
    assert len(application['stages']) == 4
    assert len(application['requirements']) == 4

    response = client.post('/api/admissions/applications', headers=officer.headers, json={'lead_id': lead['id']})
    assert response.status_code == 409

    response = client.post('/api/admissions/offers', headers=officer.headers, json={
        'lead_id': lead['id'],
        'expiry_date': (date.today() + timedelta(days=14)).isoformat(),
    })
    assert response.status_code == 201

    detail = client.get(f"/api/admissions/leads/{lead['id']}", headers=officer.headers).get_json()['data']
    assert detail['status'] == S.OFFERED

    response = client.post(f"/api/admissions/leads/{lead['id']}/convert", headers=officer.headers,
                           json={'section': 'B'})
    assert response.status_code == 201
    student = response.get_json()['data']
    assert student['admission_number'] == f'MAIN{year}0001'
    assert student['section'] == 'B'
    assert student['class_name'] == lead_data['applied_class']

    detail = client.get(f"/api/admissions/leads/{lead['id']}", headers=officer.headers).get_json()['data']
    assert detail['status'] == S.ENROLLED


def test_convert_requires_offer(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    response = client.post(f"/api/admissions/leads/{lead['id']}/convert", headers=officer.headers, json={})
    assert response.status_code == 409


def test_application_cannot_be_set_enrolled(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    application = client.post('/api/admissions/applications', headers=officer.headers,
                              json={'lead_id': lead['id']}).get_json()['data']
    response = client.put(f"/api/admissions/applications/{application['id']}/status", headers=officer.headers,
                          json={'status': 'ENROLLED'})
    assert response.status_code == 400


def test_rejected_application_rejects_lead(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    application = client.post('/api/admissions/applications', headers=officer.headers,
                              json={'lead_id': lead['id']}).get_json()['data']
    response = client.put(f"/api/admissions/applications/{application['id']}/status", headers=officer.headers,
                          json={'status': 'REJECTED', 'decision_notes': 'Class full'})
    assert response.status_code == 200

    detail = client.get(f"/api/admissions/leads/{lead['id']}", headers=officer.headers).get_json()['data']
    assert detail['status'] == S.REJECTED


def test_offer_expiry_must_be_in_future(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    response = client.post('/api/admissions/offers', headers=officer.headers, json={
        'lead_id': lead['id'],
        'expiry_date': date.today().isoformat(),
    })
    assert response.status_code == 400


def test_registration_payment_marks_fee_paid(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    response = client.post('/api/admissions/payments', headers=officer.headers, json={
        'lead_id': lead['id'],
        'amount': '1500.00',
        'method': 'CASH',
        'type': 'REGISTRATION',
    })
    assert response.status_code == 201

    detail = client.get(f"/api/admissions/leads/{lead['id']}", headers=officer.headers).get_json()['data']
    assert detail['status'] == S.FEE_PAID


def test_funnel_stats(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    create_lead(client, officer, lead_data)
    client.post('/api/admissions/offers', headers=officer.headers, json={
        'lead_id': lead['id'],
        'expiry_date': (date.today() + timedelta(days=7)).isoformat(),
    })

    stats = client.get('/api/admissions/stats/funnel', headers=officer.headers).get_json()['data']
    assert stats['total_leads'] == 2
    assert stats['offered_leads'] == 1
    assert stats['overall_conversion_rate'] == 0


def test_kanban_groups_by_status(client, officer, lead_data):
    create_lead(client, officer, lead_data)
    board = client.get('/api/admissions/kanban', headers=officer.headers).get_json()['data']
    assert len(board[S.NEW]) == 1
    assert S.ARCHIVED not in board


# Numbering after archives and collisions

def test_numbering_continues_after_early_leads_are_archived(client, officer, lead_data):
    leads = [create_lead(client, officer, lead_data) for _ in range(12)]
    for lead in leads[:6]:
        response = client.post(f"/api/admissions/leads/{lead['id']}/archive", headers=officer.headers)
        assert response.status_code == 200

    assert create_lead(client, officer, lead_data)['registration_number'] == 'TSHMAIN-2025-26-0013'


def test_taken_number_is_retried_with_next_sequence(client, officer, lead_data, monkeypatch):
    create_lead(client, officer, lead_data)
    create_lead(client, officer, lead_data)
    monkeypatch.setattr('schoolerp.services.numbering.next_registration_sequence', lambda prefix: 1)

    assert create_lead(client, officer, lead_data)['registration_number'] == 'TSHMAIN-2025-26-0003'


def test_numbering_gives_up_after_max_attempts(app, client, officer, lead_data, monkeypatch):
    for _ in range(3):
        create_lead(client, officer, lead_data)
    app.config['NUMBERING_MAX_ATTEMPTS'] = 2
    monkeypatch.setattr('schoolerp.services.numbering.next_registration_sequence', lambda prefix: 1)

    response = client.post('/api/admissions/leads', headers=officer.headers, json=lead_data)
    assert response.status_code == 409
    assert 'after 2 attempts' in response.get_json()['message']


# Status changes driven by pipeline records

def lead_status(client, user, lead_id):
    return client.get(f"/api/admissions/leads/{lead_id}", headers=user.headers).get_json()['data']['status']


def create_application(client, user, lead_id):
    response = client.post('/api/admissions/applications', headers=user.headers, json={'lead_id': lead_id})
    assert response.status_code == 201
    return response.get_json()['data']


def create_offer(client, user, lead_id):
    response = client.post('/api/admissions/offers', headers=user.headers, json={
        'lead_id': lead_id,
        'expiry_date': (date.today() + timedelta(days=14)).isoformat(),
    })
    assert response.status_code == 201
    return response.get_json()['data']


@pytest.mark.parametrize('kind, scheduled, completed', [
    ('EXAM', S.ASSESSMENT_SCHEDULED, S.ASSESSMENT_COMPLETED),
    ('PLACEMENT_TEST', S.ASSESSMENT_SCHEDULED, S.ASSESSMENT_COMPLETED),
    ('INTERVIEW', S.INTERVIEW_SCHEDULED, S.INTERVIEW_COMPLETED),
])
def test_assessment_moves_lead(client, officer, lead_data, kind, scheduled, completed):
    lead = create_lead(client, officer, lead_data)
    response = client.post('/api/admissions/assessments', headers=officer.headers, json={
        'lead_id': lead['id'], 'type': kind, 'scheduled_date': '2025-07-01T10:00:00', 'max_score': '100',
    })
    assert response.status_code == 201
    assessment = response.get_json()['data']
    assert lead_status(client, officer, lead['id']) == scheduled

    response = client.put(f"/api/admissions/assessments/{assessment['id']}", headers=officer.headers,
                          json={'status': 'COMPLETED', 'score': '72'})
    assert response.status_code == 200
    assert response.get_json()['data']['actual_date'] is not None
    assert lead_status(client, officer, lead['id']) == completed


def test_assessment_score_above_maximum(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    assessment = client.post('/api/admissions/assessments', headers=officer.headers, json={
        'lead_id': lead['id'], 'type': 'EXAM', 'scheduled_date': '2025-07-01T10:00:00', 'max_score': '50',
    }).get_json()['data']
    response = client.put(f"/api/admissions/assessments/{assessment['id']}", headers=officer.headers,
                          json={'status': 'COMPLETED', 'score': '60'})
    assert response.status_code == 400


@pytest.mark.parametrize('offer_status, expected', [
    ('ACCEPTED', S.ACCEPTED),
    ('DECLINED', S.REJECTED),
    ('EXPIRED', S.CLOSED_LOST),
])
def test_offer_status_moves_lead(client, officer, lead_data, offer_status, expected):
    lead = create_lead(client, officer, lead_data)
    offer = create_offer(client, officer, lead['id'])

    response = client.put(f"/api/admissions/offers/{offer['id']}/status", headers=officer.headers,
                          json={'status': offer_status})
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == offer_status
    assert lead_status(client, officer, lead['id']) == expected
    if offer_status == 'ACCEPTED':
        assert response.get_json()['data']['confirmed_date'] is not None


def test_confirmation_payment_enrolls_lead(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    create_offer(client, officer, lead['id'])

    response = client.post('/api/admissions/payments', headers=officer.headers, json={
        'lead_id': lead['id'], 'amount': '25000.00', 'method': 'BANK_TRANSFER', 'type': 'ADMISSION_CONFIRMATION',
    })
    assert response.status_code == 201
    assert lead_status(client, officer, lead['id']) == S.ENROLLED

    offer = client.get(f"/api/admissions/leads/{lead['id']}/offer", headers=officer.headers).get_json()['data']
    assert offer['status'] == 'ACCEPTED'
    assert offer['confirmed_date'] is not None


def test_pending_confirmation_payment_does_not_enroll(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    create_offer(client, officer, lead['id'])
    client.post('/api/admissions/payments', headers=officer.headers, json={
        'lead_id': lead['id'], 'amount': '25000.00', 'method': 'CHECK',
        'type': 'ADMISSION_CONFIRMATION', 'status': 'PENDING',
    })
    assert lead_status(client, officer, lead['id']) == S.OFFERED


@pytest.mark.parametrize('application_status, expected', [
    ('ACCEPTED', S.DECISION_PENDING),
    ('WAITLISTED', S.WAITLISTED),
    ('WITHDRAWN', S.CLOSED_LOST),
])
def test_application_decision_moves_lead(client, officer, lead_data, application_status, expected):
    lead = create_lead(client, officer, lead_data)
    application = create_application(client, officer, lead['id'])
    assert lead_status(client, officer, lead['id']) == S.APPLICATION_RECEIVED

    response = client.put(f"/api/admissions/applications/{application['id']}/status", headers=officer.headers,
                          json={'status': application_status})
    assert response.status_code == 200
    assert lead_status(client, officer, lead['id']) == expected


def test_record_is_saved_when_lead_cannot_move(client, officer, lead_data):
    lead = create_lead(client, officer, lead_data)
    application = create_application(client, officer, lead['id'])
    create_offer(client, officer, lead['id'])
    assert lead_status(client, officer, lead['id']) == S.OFFERED

    response = client.put(f"/api/admissions/applications/{application['id']}/status", headers=officer.headers,
                          json={'status': 'ACCEPTED', 'decision_notes': 'Late decision'})
    assert response.status_code == 200

    stored = client.get(f"/api/admissions/applications/{application['id']}", headers=officer.headers)
    assert stored.get_json()['data']['status'] == 'ACCEPTED'
    assert stored.get_json()['data']['decision_notes'] == 'Late decision'
    assert lead_status(client, officer, lead['id']) == S.OFFERED
