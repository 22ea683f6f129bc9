"""
WhatsApp template checks against the provider's naming and content policies

Pure functions; nothing here touches the database or the network.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

NAME_PATTERN = re.compile(r'^[a-z0-9_]+$')
VARIABLE_PATTERN = re.compile(r'\{\{(\w+)\}\}')
MAX_NAME_LENGTH = 512
MAX_BODY_LENGTH = 1024
MAX_PARAMETER_LENGTH = 200
MAX_VARIABLES = 10

MARKETING_TERMS = (
    'sale', 'discount', 'offer', 'promotion', 'buy now', 'limited time',
    'special deal', 'save money', 'free shipping', 'coupon', 'voucher',
)
PROHIBITED_PHRASES = (
    'click here', 'urgent', 'act now', 'congratulations you won',
    'you have been selected', 'claim your prize',
)
VERIFICATION_WORDS = ('otp', 'code', 'password')
GENERIC_NAMES = ('test', 'sample', 'demo', 'temp')


def validate_name(name: str) -> Dict[str, Any]:
    errors = []
    suggestions = []

    if not name:
        errors.append("Template name cannot be empty")
    elif not NAME_PATTERN.match(name):
        errors.append("Template name can only contain lowercase letters, numbers, and underscores")
        suggestions.append("Convert to lowercase and replace spaces/special characters with underscores")
    if len(name) > MAX_NAME_LENGTH:
        errors.append(f"Template name cannot exceed {MAX_NAME_LENGTH} characters")
    if name.startswith('_'):
        errors.append("Template name cannot start with underscore")
    if name.endswith('_'):
        errors.append("Template name cannot end with underscore")
    if '__' in name:
        errors.append("Template name cannot contain consecutive underscores")

    if len(name) < 3:
        suggestions.append("Use descriptive names (at least 3 characters) for better organization")
    if any(word in name for word in GENERIC_NAMES):
        suggestions.append('Avoid generic names like "test", "sample", "demo" for production templates')

    return {'is_valid': not errors, 'errors': errors, 'suggestions': suggestions}


def validate_content(content: str, category: str) -> Dict[str, Any]:
    violations = []
    suggestions = []
    lower = content.lower()

    if category != 'MARKETING':
        for term in MARKETING_TERMS:
            if term in lower:
                violations.append(f'Marketing term "{term}" not allowed in {category} templates')
                suggestions.append("Remove marketing language or change category to MARKETING")

    if category == 'AUTHENTICATION' and not any(word in lower for word in VERIFICATION_WORDS):
        violations.append("Authentication templates should contain verification elements like OTP, code, or password")

    for phrase in PROHIBITED_PHRASES:
        if phrase in lower:
            violations.append(f'Prohibited phrase "{phrase}" detected')
            suggestions.append("Replace with more professional language")

    if content and sum(1 for c in content if 'A' <= c <= 'Z') / len(content) > 0.3:
        violations.append("Excessive use of capital letters detected")
        suggestions.append("Use normal sentence case for better approval chances")

    if re.search(r'[!?]{2,}', content):
        violations.append("Excessive punctuation marks detected")
        suggestions.append("Use single exclamation marks or question marks")

    return {'is_valid': not violations, 'violations': violations, 'suggestions': suggestions}


def extract_variables(content: str) -> List[str]:
    """Variable names in order of first use"""
    seen = []
    for name in VARIABLE_PATTERN.findall(content):
        if name not in seen:
            seen.append(name)
    return seen


def example_value(variable: str, index: int) -> str:
    lower = variable.lower()
    if 'name' in lower:
        return 'John Doe'
    if 'amount' in lower or 'price' in lower:
        return '$100'
    if 'date' in lower:
        return '2024-12-31'
    if 'time' in lower:
        return '3:00 PM'
    if 'code' in lower or 'otp' in lower:
        return '123456'
    if 'phone' in lower:
        return '+1234567890'
    if 'email' in lower:
        return 'user@example.com'
    return f'Example {index + 1}'


def to_provider_format(content: str, variables: Sequence[str]) -> Dict[str, Any]:
    """
    Body with {{name}} placeholders replaced by {{1}}, {{2}}, ...

    Returns:
        dict with body, variable_map (name -> position) and the BODY
        component carrying example values
    """
    body = content
    variable_map = {}
    for position, variable in enumerate(variables, start=1):
        body = body.replace('{{' + variable + '}}', '{{' + str(position) + '}}')
        variable_map[variable] = position

    component = {'type': 'BODY', 'text': body}
    if variables:
        component['example'] = {'body_text': [[example_value(v, i) for i, v in enumerate(variables)]]}

    return {'body': body, 'variable_map': variable_map, 'components': [component]}


def prepare_parameters(variables: Sequence[str], supplied: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check the values supplied for a send

    Missing or blank variables are errors; extra keys, long values and
    values with markup characters are warnings. Only declared variables
    are kept, stripped.
    """
    supplied = supplied or {}
    errors = []
    warnings = []
    suggested = {}

    for variable in variables:
        value = supplied.get(variable)
        if value is None or str(value).strip() == '':
            errors.append(f"Missing required parameter: {variable}")
            suggested[variable] = f"[{variable}]"

    for key in supplied:
        if key not in variables:
            warnings.append(f"Extra parameter provided: {key} (will be ignored)")

    for key, value in supplied.items():
        if value is None:
            continue
        text = str(value)
        if len(text) > MAX_PARAMETER_LENGTH:
            warnings.append(f"Parameter {key} is very long ({len(text)} chars). Consider shortening for better delivery.")
        if re.search(r'[<>{}]', text):
            warnings.append(f"Parameter {key} contains special characters that might cause issues")

    parameters = {v: str(supplied[v]).strip() for v in variables
                  if supplied.get(v) is not None and str(supplied[v]).strip()}

    return {
        'parameters': parameters,
        'is_valid': not errors,
        'errors': errors,
        'warnings': warnings,
        'suggested_parameters': suggested,
        'compliant': not errors and not warnings,
    }


def validate_template(name: str, category: str, content: str,
                      variables: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Full pre-submission check

    Variables default to the ones used in the body. Declared but unused
    variables are warnings; used but undeclared ones are errors.
    """
    used = extract_variables(content)
    declared = list(variables) if variables is not None else used

    name_check = validate_name(name)
    content_check = validate_content(content, category)
    errors = name_check['errors'] + content_check['violations']
    warnings = []
    suggestions = name_check['suggestions'] + content_check['suggestions']

    for variable in used:
        if variable not in declared:
            errors.append(f"Variable {{{{{variable}}}}} used in template but not declared")
    for variable in declared:
        if variable not in used:
            warnings.append(f"Variable {variable} declared but not used in template")

    if len(content) > MAX_BODY_LENGTH:
        errors.append(f"Template body exceeds the {MAX_BODY_LENGTH} character limit")
    if len(declared) > MAX_VARIABLES:
        warnings.append(f"Templates with more than {MAX_VARIABLES} variables may face approval delays")
    if category == 'AUTHENTICATION' and not declared:
        warnings.append("Authentication templates typically include variables for OTP/codes")
    if category == 'UTILITY' and len(content) < 20:
        warnings.append("Utility templates should provide meaningful information to users")

    return {
        'is_valid': not errors,
        'errors': errors,
        'warnings': warnings,
        'suggestions': suggestions,
        'variables': declared,
        'components': to_provider_format(content, declared)['components'],
    }


def render(content: str, parameters: Dict[str, Any]) -> str:
    """Fill {{name}} placeholders, leaving unknown ones untouched"""
    return VARIABLE_PATTERN.sub(
        lambda m: str(parameters[m.group(1)]) if m.group(1) in parameters else m.group(0), content)
