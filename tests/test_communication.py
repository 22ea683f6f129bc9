import hashlib
import hmac
import itertools
import json

import pytest

CONTENT = 'Dear {{parent_name}}, the fee of {{amount}} for {{student_name}} is due on {{due_date}}.'
PARAMETERS = {'parent_name': 'Rohit', 'amount': '12,000', 'student_name': 'Aarav', 'due_date': '10 July'}


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload

    def json(self):
        return self._payload


@pytest.fixture
def provider(app, monkeypatch):
    """Configured WhatsApp credentials with the graph API stubbed out"""
    app.config['WHATSAPP_ACCESS_TOKEN'] = 'token'
    app.config['WHATSAPP_PHONE_NUMBER_ID'] = '1234'
    ids = itertools.count(1)
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({'url': url, 'json': json, 'headers': headers})
        return FakeResponse(200, {'messages': [{'id': f'wamid.{next(ids)}'}]})

    monkeypatch.setattr('schoolerp.services.whatsapp_client.requests.post', fake_post)
    return calls


def _create_template(client, user, **extra):
    body = {'name': 'fee_reminder', 'category': 'UTILITY', 'content': CONTENT}
    body.update(extra)
    return client.post('/api/communication/templates', headers=user.headers, json=body)


@pytest.fixture
def approved_template(client, principal):
    template = _create_template(client, principal).get_json()['data']
    assert client.post(f"/api/communication/templates/{template['id']}/submit",
                       headers=principal.headers).status_code == 200
    response = client.put(f"/api/communication/templates/{template['id']}/provider-status",
                          headers=principal.headers, json={'status': 'APPROVED'})
    assert response.status_code == 200
    return response.get_json()['data']


def _send(client, user, template_id, recipients):
    return client.post('/api/communication/messages', headers=user.headers,
                       json={'template_id': template_id, 'recipients': recipients})


def _status_payload(*statuses):
    return {'entry': [{'changes': [{'value': {'statuses': [
        {'id': message_id, 'status': status, 'timestamp': '1751328000'} for message_id, status in statuses
    ]}}]}]}


def test_create_template_extracts_variables(client, principal):
    response = _create_template(client, principal)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['status'] == 'DRAFT'
    assert data['variables'] == ['parent_name', 'amount', 'student_name', 'due_date']

    assert _create_template(client, principal).status_code == 409


def test_create_template_rejects_bad_name(client, principal):
    response = _create_template(client, principal, name='Fee Reminder')
    assert response.status_code == 400
    assert 'name' in response.get_json()['errors']


def test_teacher_cannot_manage_templates(client, teacher):
    assert _create_template(client, teacher).status_code == 403


def test_validate_endpoint(client, teacher):
    response = client.post('/api/communication/templates/validate', headers=teacher.headers,
                           json={'name': 'fee_reminder', 'category': 'UTILITY', 'content': 'Huge sale today'})
    assert response.status_code == 200
    assert response.get_json()['data']['is_valid'] is False


def test_submit_checks_policies(client, principal):
    template = _create_template(client, principal, name='uniform_sale',
                                content='Uniform sale this week for {{student_name}}').get_json()['data']
    response = client.post(f"/api/communication/templates/{template['id']}/submit", headers=principal.headers)
    assert response.status_code == 400


def test_approval_flow(client, principal, approved_template):
    assert approved_template['status'] == 'APPROVED'
    assert approved_template['meta_template_name'] == 'fee_reminder'

    again = client.put(f"/api/communication/templates/{approved_template['id']}/provider-status",
                       headers=principal.headers, json={'status': 'REJECTED'})
    assert again.status_code == 409


def test_content_edit_returns_template_to_draft(client, principal, approved_template):
    response = client.put(f"/api/communication/templates/{approved_template['id']}", headers=principal.headers,
                          json={'content': 'Dear {{parent_name}}, fees are due.'})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'DRAFT'
    assert data['variables'] == ['parent_name']


def test_preview(client, principal, approved_template):
    response = client.post(f"/api/communication/templates/{approved_template['id']}/preview",
                           headers=principal.headers, json={'parameters': {'parent_name': 'Rohit'}})
    data = response.get_json()['data']
    assert data['is_valid'] is False
    assert data['rendered'].startswith('Dear Rohit, the fee of {{amount}}')
    assert 'amount' in data['suggested_parameters']


def test_draft_template_cannot_be_sent(client, principal, provider):
    template = _create_template(client, principal).get_json()['data']
    response = _send(client, principal, template['id'], [{'phone': '9876543210', 'parameters': PARAMETERS}])
    assert response.status_code == 400
    assert provider == []


def test_send_marks_each_recipient(client, principal, approved_template, provider):
    response = _send(client, principal, approved_template['id'], [
        {'name': 'Rohit', 'phone': '+91 98765 43210', 'parameters': PARAMETERS},
        {'name': 'Meera', 'phone': '9123456780', 'parameters': {'parent_name': 'Meera'}},
    ])
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['sent_count'] == 1
    assert data['failed_count'] == 1

    sent, failed = data['recipients']
    assert sent['status'] == 'SENT'
    assert sent['provider_message_id'] == 'wamid.1'
    assert failed['status'] == 'FAILED'
    assert 'Missing required parameter: amount' in failed['error_message']

    assert len(provider) == 1
    payload = provider[0]['json']
    assert payload['to'] == '919876543210'
    assert payload['template']['name'] == 'fee_reminder'
    assert [p['text'] for p in payload['template']['components'][0]['parameters']] == \
        ['Rohit', '12,000', 'Aarav', '10 July']


def test_send_without_credentials_fails_recipients(client, principal, approved_template):
    response = _send(client, principal, approved_template['id'], [{'phone': '9876543210', 'parameters': PARAMETERS}])
    assert response.status_code == 201
    recipient = response.get_json()['data']['recipients'][0]
    assert recipient['status'] == 'FAILED'
    assert recipient['error_message'].startswith('WhatsApp is not configured')


def test_used_template_cannot_be_deleted(client, principal, approved_template, provider):
    _send(client, principal, approved_template['id'], [{'phone': '9876543210', 'parameters': PARAMETERS}])
    response = client.delete(f"/api/communication/templates/{approved_template['id']}", headers=principal.headers)
    assert response.status_code == 409


def test_webhook_verification(client):
    ok = client.get('/api/communication/webhook?hub.mode=subscribe&hub.verify_token=verify-me&hub.challenge=4242')
    assert ok.status_code == 200
    assert ok.get_data(as_text=True) == '4242'

    bad = client.get('/api/communication/webhook?hub.mode=subscribe&hub.verify_token=nope&hub.challenge=4242')
    assert bad.status_code == 401


def test_webhook_statuses_never_move_backwards(client, principal, approved_template, provider):
    message = _send(client, principal, approved_template['id'],
                    [{'phone': '9876543210', 'parameters': PARAMETERS}]).get_json()['data']

    first = client.post('/api/communication/webhook',
                        json=_status_payload(('wamid.1', 'read'), ('wamid.99', 'delivered')))
    assert first.get_json()['data'] == {'updated': 1, 'ignored': 1}

    late = client.post('/api/communication/webhook', json=_status_payload(('wamid.1', 'delivered')))
    assert late.get_json()['data'] == {'updated': 0, 'ignored': 1}

    stored = client.get(f"/api/communication/messages/{message['id']}", headers=principal.headers)
    recipient = stored.get_json()['data']['recipients'][0]
    assert recipient['status'] == 'READ'
    assert recipient['read_at'] is not None


def test_webhook_failure_moves_counts(client, principal, approved_template, provider):
    message = _send(client, principal, approved_template['id'],
                    [{'phone': '9876543210', 'parameters': PARAMETERS}]).get_json()['data']
    payload = _status_payload(('wamid.1', 'failed'))
    payload['entry'][0]['changes'][0]['value']['statuses'][0]['errors'] = [{'title': 'Number not on WhatsApp'}]
    client.post('/api/communication/webhook', json=payload)

    stored = client.get(f"/api/communication/messages/{message['id']}", headers=principal.headers)
    data = stored.get_json()['data']
    assert data['sent_count'] == 0
    assert data['failed_count'] == 1
    assert data['recipients'][0]['error_message'] == 'Number not on WhatsApp'


def test_messages_are_branch_scoped(client, principal, make_user, approved_template, provider):
    _send(client, principal, approved_template['id'], [{'phone': '9876543210', 'parameters': PARAMETERS}])
    north = make_user('principal', branch='NORTH')
    listing = client.get('/api/communication/messages', headers=north.headers).get_json()['data']
    assert listing['total'] == 0
    assert client.get(f"/api/communication/templates/{approved_template['id']}",
                      headers=north.headers).status_code == 404


def test_read_after_failure_is_ignored(client, principal, approved_template, provider):
    message = _send(client, principal, approved_template['id'],
                    [{'phone': '9876543210', 'parameters': PARAMETERS}]).get_json()['data']
    client.post('/api/communication/webhook', json=_status_payload(('wamid.1', 'failed')))

    late = client.post('/api/communication/webhook', json=_status_payload(('wamid.1', 'read')))
    assert late.get_json()['data'] == {'updated': 0, 'ignored': 1}

    data = client.get(f"/api/communication/messages/{message['id']}", headers=principal.headers).get_json()['data']
    assert data['recipients'][0]['status'] == 'FAILED'
    assert data['recipients'][0]['read_at'] is None
    assert data['sent_count'] == 0
    assert data['failed_count'] == 1


def _signed_post(client, payload, secret=None, signature=None):
    body = json.dumps(payload).encode('utf-8')
    headers = {}
    if secret is not None:
        headers['X-Hub-Signature-256'] = 'sha256=' + hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    if signature is not None:
        headers['X-Hub-Signature-256'] = signature
    return client.post('/api/communication/webhook', data=body, headers=headers, content_type='application/json')


def test_signed_webhook_is_applied(app, client, principal, approved_template, provider):
    app.config['WHATSAPP_APP_SECRET'] = 'app-secret'
    message = _send(client, principal, approved_template['id'],
                    [{'phone': '9876543210', 'parameters': PARAMETERS}]).get_json()['data']

    response = _signed_post(client, _status_payload(('wamid.1', 'delivered')), secret='app-secret')
    assert response.status_code == 200
    assert response.get_json()['data'] == {'updated': 1, 'ignored': 0}

    data = client.get(f"/api/communication/messages/{message['id']}", headers=principal.headers).get_json()['data']
    assert data['recipients'][0]['status'] == 'DELIVERED'


def test_bad_or_missing_signature_is_refused(app, client, principal, approved_template, provider):
    app.config['WHATSAPP_APP_SECRET'] = 'app-secret'
    message = _send(client, principal, approved_template['id'],
                    [{'phone': '9876543210', 'parameters': PARAMETERS}]).get_json()['data']
    payload = _status_payload(('wamid.1', 'read'))

    assert _signed_post(client, payload, secret='wrong-secret').status_code == 401
    assert _signed_post(client, payload, signature='sha1=abcdef').status_code == 401
    assert _signed_post(client, payload).status_code == 401

    data = client.get(f"/api/communication/messages/{message['id']}", headers=principal.headers).get_json()['data']
    assert data['recipients'][0]['status'] == 'SENT'


def test_unsigned_webhook_refused_when_signature_required(app, client):
    app.config['WHATSAPP_REQUIRE_SIGNATURE'] = True
    assert _signed_post(client, _status_payload(('wamid.1', 'read'))).status_code == 401


@pytest.fixture
def business_account(app, monkeypatch):
    """Template management credentials; the fake provider answers with `reply`"""
    app.config['WHATSAPP_ACCESS_TOKEN'] = 'token'
    app.config['WHATSAPP_BUSINESS_ACCOUNT_ID'] = '5678'
    reply = {'response': FakeResponse(200, {'id': 'tpl.1', 'status': 'PENDING', 'category': 'UTILITY'}),
             'calls': []}

    def fake_post(url, json=None, headers=None, timeout=None):
        reply['calls'].append({'url': url, 'json': json})
        return reply['response']

    monkeypatch.setattr('schoolerp.services.whatsapp_client.requests.post', fake_post)
    return reply


def test_submit_pushes_template_to_provider(client, principal, business_account):
    template = _create_template(client, principal).get_json()['data']
    response = client.post(f"/api/communication/templates/{template['id']}/submit", headers=principal.headers)
    assert response.status_code == 200
    assert response.get_json()['data']['template']['status'] == 'PENDING'

    call = business_account['calls'][0]
    assert call['url'].endswith('/5678/message_templates')
    assert call['json']['name'] == 'fee_reminder'
    assert call['json']['components'][0]['text'].startswith('Dear {{1}}, the fee of {{2}}')


def test_provider_approval_on_submit(client, principal, business_account):
    business_account['response'] = FakeResponse(200, {'id': 'tpl.1', 'status': 'APPROVED', 'category': 'UTILITY'})
    template = _create_template(client, principal).get_json()['data']
    response = client.post(f"/api/communication/templates/{template['id']}/submit", headers=principal.headers)
    data = response.get_json()['data']['template']
    assert data['status'] == 'APPROVED'
    assert data['meta_template_name'] == 'fee_reminder'


def test_provider_refusal_is_bad_gateway(client, principal, business_account):
    business_account['response'] = FakeResponse(400, {'error': {'code': 368, 'message': 'Duplicate'}})
    template = _create_template(client, principal).get_json()['data']

    response = client.post(f"/api/communication/templates/{template['id']}/submit", headers=principal.headers)
    assert response.status_code == 502
    assert response.get_json() == {'ok': False,
                                   'message': 'Template name already exists or violates naming rules'}

    stored = client.get(f"/api/communication/templates/{template['id']}", headers=principal.headers)
    assert stored.get_json()['data']['status'] == 'DRAFT'
