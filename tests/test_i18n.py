from raadarenda.utils.i18n import en, get_language, ru, translate, uz


def test_language_tables_share_keys():
    assert set(en) == set(ru)
    assert set(uz) <= set(ru)


def test_translate_falls_back_to_russian_then_key():
    assert translate('otpSent', 'en') == 'Code sent'
    assert translate('categoryDeleted', 'uz') == ru['categoryDeleted']
    assert translate('noSuchKey', 'en') == 'noSuchKey'
    assert translate('otpSent', 'de') == ru['otpSent']


def test_translate_formats_params():
    assert '3' in translate('categoryHasProducts', 'en', count=3)


def test_language_header_wins(app):
    with app.test_request_context(headers={'x-language': 'uz', 'Accept-Language': 'en-US,en;q=0.9'}):
        assert get_language() == 'uz'


def test_accept_language_primary_tag(app):
    with app.test_request_context(headers={'Accept-Language': 'en-US,en;q=0.9'}):
        assert get_language() == 'en'


def test_unsupported_language_defaults_to_russian(app):
    with app.test_request_context(headers={'x-language': 'fr', 'Accept-Language': 'de-DE'}):
        assert get_language() == 'ru'


def test_error_messages_follow_request_language(client):
    response = client.get('/api/orders/my-orders', headers={'x-language': 'en'})
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'message': 'Authorization required'}
