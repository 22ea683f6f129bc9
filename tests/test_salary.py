from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from schoolerp.models import LeaveStatus
from schoolerp.services.salary_service import calculate_payslip, leave_deduction


def _leave(status, start, end, is_paid=True):
    return SimpleNamespace(status=status, start_date=start, end_date=end,
                           policy=SimpleNamespace(is_paid=is_paid))


def test_payslip_figures():
    slip = calculate_payslip(20000, 10, 12, 0.75, allowances=1500)
    assert slip['da_amount'] == Decimal('2000.00')
    assert slip['pf_amount'] == Decimal('2400.00')
    assert slip['esi_amount'] == Decimal('150.00')
    assert slip['employer_pf'] == slip['pf_amount']
    assert slip['total_earnings'] == Decimal('23500.00')
    assert slip['total_deductions'] == Decimal('2550.00')
    assert slip['net_payable'] == Decimal('20950.00')


def test_payslip_with_adjustments():
    slip = calculate_payslip(10000, 0, 0, 0, leave_deductions=500, other_deductions=250, other_additions=1000)
    assert slip['total_earnings'] == Decimal('11000.00')
    assert slip['total_deductions'] == Decimal('750.00')
    assert slip['net_payable'] == Decimal('10250.00')


def test_leave_deduction_counts_unpaid_days_in_month():
    leaves = [
        _leave(LeaveStatus.REJECTED, date(2025, 6, 3), date(2025, 6, 4)),
        _leave(LeaveStatus.APPROVED, date(2025, 6, 29), date(2025, 7, 2), is_paid=False),
        _leave(LeaveStatus.APPROVED, date(2025, 6, 10), date(2025, 6, 12)),
        _leave(LeaveStatus.CANCELLED, date(2025, 6, 16), date(2025, 6, 20), is_paid=False),
    ]
    # 2 rejected days plus 2 unpaid days falling in June
    assert leave_deduction(30000, leaves, 2025, 6) == Decimal('4000.00')


def test_leave_deduction_without_leave():
    assert leave_deduction(30000, [], 2025, 6) == Decimal('0.00')


@pytest.fixture
def accountant(make_user):
    return make_user('accountant')


@pytest.fixture
def structure(client, accountant):
    response = client.post('/api/salary/structures', headers=accountant.headers, json={
        'name': 'Teaching Grade A', 'basic_salary': 20000,
        'da_percentage': 10, 'pf_percentage': 12, 'esi_percentage': 0.75,
    })
    assert response.status_code == 201
    return response.get_json()['data']['id']


@pytest.fixture
def salary(client, accountant, teacher, structure):
    response = client.post('/api/salary/staff', headers=accountant.headers, json={
        'staff_id': teacher.staff_id, 'structure_id': structure,
        'additional_allowances': 1500, 'start_date': '2025-04-01',
    })
    assert response.status_code == 201
    return response.get_json()['data']


def test_assign_salary_uses_structure_values(salary):
    assert salary['basic_salary'] == 20000.0
    assert salary['da_percentage'] == 10.0
    assert salary['is_active'] is True


def test_preview_and_process_payment(client, accountant, teacher, salary):
    body = {'staff_id': teacher.staff_id, 'month': 6, 'year': 2025}

    preview = client.post('/api/salary/payments/preview', headers=accountant.headers, json=body)
    assert preview.status_code == 200
    assert preview.get_json()['data']['net_payable'] == 20950.0

    created = client.post('/api/salary/payments', headers=accountant.headers, json=body)
    assert created.status_code == 201
    payment = created.get_json()['data']
    assert payment['status'] == 'PENDING'
    assert payment['net_payable'] == 20950.0

    duplicate = client.post('/api/salary/payments', headers=accountant.headers, json=body)
    assert duplicate.status_code == 409

    paid = client.put(f"/api/salary/payments/{payment['id']}/status", headers=accountant.headers,
                      json={'status': 'PAID'})
    assert paid.status_code == 200
    assert paid.get_json()['data']['payment_date'] is not None

    reverted = client.put(f"/api/salary/payments/{payment['id']}/status", headers=accountant.headers,
                          json={'status': 'CANCELLED'})
    assert reverted.status_code == 400

    listed = client.get('/api/salary/payments?month=6&year=2025', headers=accountant.headers)
    assert [p['id'] for p in listed.get_json()['data']] == [payment['id']]


def test_increment_replaces_active_salary(client, accountant, teacher, salary):
    response = client.post(f'/api/salary/staff/{teacher.staff_id}/increment', headers=accountant.headers,
                           json={'percentage': 10, 'effective_date': '2025-07-01'})
    assert response.status_code == 201
    assert response.get_json()['data']['basic_salary'] == 22000.0

    active = client.get(f'/api/salary/staff/{teacher.staff_id}', headers=accountant.headers)
    assert active.get_json()['data']['id'] == response.get_json()['data']['id']

    history = client.get(f'/api/salary/staff/{teacher.staff_id}/history', headers=accountant.headers)
    rows = history.get_json()['data']
    assert len(rows) == 2
    assert rows[1]['is_active'] is False
    assert rows[1]['end_date'] == '2025-07-01'


def test_payment_month_is_not_repeated_after_increment(client, accountant, teacher, salary):
    body = {'staff_id': teacher.staff_id, 'month': 6, 'year': 2025}
    assert client.post('/api/salary/payments', headers=accountant.headers, json=body).status_code == 201
    client.post(f'/api/salary/staff/{teacher.staff_id}/increment', headers=accountant.headers,
                json={'amount': 1000, 'effective_date': '2025-06-15'})

    again = client.post('/api/salary/payments', headers=accountant.headers, json=body)
    assert again.status_code == 409


def test_increment_needs_amount_or_percentage(client, accountant, teacher, salary):
    response = client.post(f'/api/salary/staff/{teacher.staff_id}/increment', headers=accountant.headers,
                           json={'effective_date': '2025-07-01'})
    assert response.status_code == 400


def test_staff_without_salary(client, accountant, principal):
    response = client.get(f'/api/salary/staff/{principal.staff_id}', headers=accountant.headers)
    assert response.status_code == 404


def test_other_branch_staff_is_hidden(client, make_user, teacher, structure):
    north_accountant = make_user('accountant', branch='NORTH')
    response = client.post('/api/salary/staff', headers=north_accountant.headers, json={
        'staff_id': teacher.staff_id, 'structure_id': structure, 'start_date': '2025-04-01',
    })
    assert response.status_code == 404


def test_teacher_cannot_process_salary(client, teacher, salary):
    response = client.post('/api/salary/payments', headers=teacher.headers,
                           json={'staff_id': teacher.staff_id, 'month': 6, 'year': 2025})
    assert response.status_code == 403
