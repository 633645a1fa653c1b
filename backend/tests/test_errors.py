from tests.test_utils_seed import admin_headers
from erp import get_db


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert body['error']['title'] == 'Not Found'
    assert 'detail' in body['error']


def test_validation_error_carries_fields(client, app_ctx):
    headers = admin_headers(['roles.create'])
    resp = client.post('/data/config/roles/add', json={}, headers=headers)
    assert resp.status_code == 400
    error = resp.get_json()['error']
    assert error['detail'] == 'The given data was invalid.'
    assert error['fields'] == {'name': ['The name field is required.']}


def test_non_object_body_is_rejected(client, app_ctx):
    headers = admin_headers(['roles.create'])
    resp = client.post('/data/config/roles/add', json=['admin'], headers=headers)
    assert resp.status_code == 400
    assert '_payload' in resp.get_json()['error']['fields']


def test_internal_error_shape(client, app_ctx, monkeypatch):
    import erp.routes.config as config_mod
    headers = admin_headers(['permissions.read'])

    class BoomSession:
        def execute(self, *a, **k):
            raise RuntimeError('explode')

    monkeypatch.setattr(config_mod, 'get_db', lambda: BoomSession())
    resp = client.get('/data/config/permissions/modules', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert 'explode' not in body['error']['detail']


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}


def test_session_is_removed_with_the_app_context(app_instance):
    with app_instance.app_context():
        first = get_db()
    with app_instance.app_context():
        assert get_db() is not first
