from schoolerp.services import template_validator as tv


def test_name_rules():
    assert tv.validate_name('fee_reminder')['is_valid']

    bad = tv.validate_name('Fee Reminder')
    assert not bad['is_valid']
    assert bad['suggestions']

    assert "Template name cannot start with underscore" in tv.validate_name('_fee')['errors']
    assert "Template name cannot end with underscore" in tv.validate_name('fee_')['errors']
    assert "Template name cannot contain consecutive underscores" in tv.validate_name('fee__due')['errors']


def test_generic_name_is_only_a_suggestion():
    result = tv.validate_name('test_notice')
    assert result['is_valid']
    assert any('generic' in s for s in result['suggestions'])


def test_marketing_terms_outside_marketing():
    utility = tv.validate_content('Big sale on uniforms this week', 'UTILITY')
    assert not utility['is_valid']
    assert 'Marketing term "sale" not allowed in UTILITY templates' in utility['violations']

    assert tv.validate_content('Big sale on uniforms this week', 'MARKETING')['is_valid']


def test_content_policies():
    assert not tv.validate_content('Please click here to pay', 'UTILITY')['is_valid']
    assert not tv.validate_content('Your fee is due!!', 'UTILITY')['is_valid']
    assert not tv.validate_content('YOUR FEE IS DUE TODAY', 'UTILITY')['is_valid']
    assert not tv.validate_content('Welcome to the portal', 'AUTHENTICATION')['is_valid']
    assert tv.validate_content('Your login code is {{otp}}', 'AUTHENTICATION')['is_valid']


def test_extract_variables_in_first_use_order():
    content = 'Hi {{name}}, {{amount}} is due. Thanks {{name}}'
    assert tv.extract_variables(content) == ['name', 'amount']


def test_provider_format_numbers_placeholders():
    result = tv.to_provider_format('Hi {{name}}, {{amount}} is due', ['name', 'amount'])
    assert result['body'] == 'Hi {{1}}, {{2}} is due'
    assert result['variable_map'] == {'name': 1, 'amount': 2}
    assert result['components'][0]['example'] == {'body_text': [['John Doe', '$100']]}


def test_provider_format_without_variables():
    result = tv.to_provider_format('School reopens on Monday', [])
    assert 'example' not in result['components'][0]


def test_prepare_parameters_missing_and_extra():
    result = tv.prepare_parameters(['name', 'amount'], {'name': '  Asha ', 'grade': '5'})
    assert not result['is_valid']
    assert result['errors'] == ['Missing required parameter: amount']
    assert result['warnings'] == ['Extra parameter provided: grade (will be ignored)']
    assert result['parameters'] == {'name': 'Asha'}
    assert result['suggested_parameters'] == {'amount': '[amount]'}
    assert not result['compliant']


def test_prepare_parameters_blank_value_is_missing():
    result = tv.prepare_parameters(['name'], {'name': '   '})
    assert result['errors'] == ['Missing required parameter: name']


def test_prepare_parameters_markup_warning():
    result = tv.prepare_parameters(['name'], {'name': '<b>Asha</b>'})
    assert result['is_valid']
    assert result['warnings'] == ['Parameter name contains special characters that might cause issues']


def test_validate_template_declared_and_used_variables():
    result = tv.validate_template('fee_notice', 'UTILITY', 'Dear {{parent}}, fees of {{amount}} are due.',
                                  variables=['parent', 'student'])
    assert not result['is_valid']
    assert 'Variable {{amount}} used in template but not declared' in result['errors']
    assert 'Variable student declared but not used in template' in result['warnings']


def test_validate_template_defaults_to_used_variables():
    result = tv.validate_template('fee_notice', 'UTILITY', 'Dear {{parent}}, fees of {{amount}} are due.')
    assert result['is_valid']
    assert result['variables'] == ['parent', 'amount']
    assert result['components'][0]['text'] == 'Dear {{1}}, fees of {{2}} are due.'


def test_render_leaves_unknown_placeholders():
    assert tv.render('Hi {{name}}, {{amount}} due', {'name': 'Asha'}) == 'Hi Asha, {{amount}} due'
