"""
WhatsApp Cloud API client
"""

import re
from typing import Any, Dict, List, Optional

import requests
from flask import current_app

from schoolerp.utils.exceptions import MessagingError
from schoolerp.utils.helpers import log_error, log_info

GRAPH_URL = 'https://graph.facebook.com'
TIMEOUT_SECONDS = 15

# Graph API error codes with a clearer explanation
TEMPLATE_ERRORS = {
    190: "Access token expired or invalid",
    368: "Template name already exists or violates naming rules",
    132: "Template content violates WhatsApp policies",
}


def normalize_phone(phone: str) -> Optional[str]:
    """Digits only, without the leading '+'; None when not a plausible number"""
    cleaned = re.sub(r'[\s\-().]', '', phone or '')
    cleaned = re.sub(r'^whatsapp:', '', cleaned)
    cleaned = cleaned.lstrip('+')
    if not cleaned.isdigit() or not 7 <= len(cleaned) <= 15:
        return None
    return cleaned


class WhatsAppClient:
    """Sends template messages through the graph API"""

    def __init__(self, access_token: Optional[str], phone_number_id: Optional[str],
                 api_version: str = 'v21.0', business_account_id: Optional[str] = None):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.business_account_id = business_account_id

    @classmethod
    def from_config(cls) -> 'WhatsAppClient':
        config = current_app.config
        return cls(config.get('WHATSAPP_ACCESS_TOKEN'), config.get('WHATSAPP_PHONE_NUMBER_ID'),
                   config.get('WHATSAPP_API_VERSION', 'v21.0'), config.get('WHATSAPP_BUSINESS_ACCOUNT_ID'))

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    @property
    def manages_templates(self) -> bool:
        return bool(self.access_token and self.business_account_id)

    @property
    def missing_settings(self) -> List[str]:
        missing = []
        if not self.access_token:
            missing.append('WHATSAPP_ACCESS_TOKEN')
        if not self.phone_number_id:
            missing.append('WHATSAPP_PHONE_NUMBER_ID')
        return missing

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_URL}/{self.api_version}/{self.phone_number_id}/messages"

    def send_template(self, to: str, template_name: str, language: str = 'en',
                      values: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Send one template message

        Args:
            to: Recipient phone number
            template_name: Approved template name on the provider side
            language: Template language code
            values: Body parameters in placeholder order

        Returns:
            dict with success, message_id and error; failures are reported,
            not raised
        """
        if not self.is_configured:
            return {'success': False, 'message_id': None,
                    'error': f"WhatsApp is not configured. Missing: {', '.join(self.missing_settings)}"}

        phone = normalize_phone(to)
        if phone is None:
            return {'success': False, 'message_id': None, 'error': f"Invalid phone number: {to}"}

        template = {'name': template_name, 'language': {'code': language}}
        if values:
            template['components'] = [{
                'type': 'body',
                'parameters': [{'type': 'text', 'text': str(v)} for v in values],
            }]
        payload = {
            'messaging_product': 'whatsapp',
            'to': phone,
            'type': 'template',
            'template': template,
        }

        try:
            response = requests.post(
                self.messages_url,
                json=payload,
                headers={'Authorization': f'Bearer {self.access_token}'},
                timeout=TIMEOUT_SECONDS,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            log_error(f"WhatsApp send to {phone} failed", e)
            return {'success': False, 'message_id': None, 'error': str(e)}

        if not response.ok:
            error = data.get('error', {})
            message = error.get('message', 'Unknown error occurred')
            if error.get('code') == 100:
                message = f"Invalid parameter error: {message}. Check that template variables match the template."
            log_error(f"WhatsApp send to {phone} rejected ({response.status_code}): {message}")
            return {'success': False, 'message_id': None, 'error': message}

        message_id = (data.get('messages') or [{}])[0].get('id')
        log_info(f"WhatsApp template {template_name} sent to {phone}: {message_id}")
        return {'success': True, 'message_id': message_id, 'error': None}

    def submit_template(self, name: str, category: str, language: str,
                        components: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Submit a template to the provider for approval

        Returns:
            dict with the provider's id, status and category

        Raises:
            MessagingError: When the provider cannot be reached or refuses
        """
        url = f"{GRAPH_URL}/{self.api_version}/{self.business_account_id}/message_templates"
        payload = {
            'name': name,
            'category': category,
            'language': language,
            'components': components,
            'allow_category_change': True,
        }
        try:
            response = requests.post(url, json=payload,
                                     headers={'Authorization': f'Bearer {self.access_token}'},
                                     timeout=TIMEOUT_SECONDS)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise MessagingError(f"Could not reach WhatsApp: {e}")

        if not response.ok:
            error = data.get('error', {})
            message = TEMPLATE_ERRORS.get(error.get('code')) or error.get('message') or 'Failed to submit template'
            if error.get('code') == 100:
                detail = error.get('error_user_msg') or error.get('message') or 'check name, category and components'
                message = f"Invalid template format or content: {detail}"
            raise MessagingError(message)

        log_info(f"WhatsApp template {name} submitted: {data.get('id')} {data.get('status')}")
        return {'id': data.get('id'), 'status': data.get('status'), 'category': data.get('category')}
