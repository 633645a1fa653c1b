import pytest
from tests.test_utils_seed import admin_headers
from erp.routes.refractory import SECTIONS


@pytest.mark.parametrize('section', SECTIONS)
def test_section_data_is_empty(client, app_ctx, section):
    headers = admin_headers([])
    for path in (f'/refractory/{section}', f'/refractory/data/{section}'):
        resp = client.get(path, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json() == {'data': []}


def test_unknown_section_is_404(client, app_ctx):
    assert client.get('/refractory/data/kilns', headers=admin_headers([])).status_code == 404


def test_refractory_requires_login(client):
    assert client.get('/refractory/data/batches').status_code == 401


def test_actions_are_not_implemented(client, app_ctx):
    headers = admin_headers([])
    for method, path in [
        ('post', '/refractory/specifications'),
        ('put', '/refractory/certifications/1'),
        ('post', '/refractory/certifications/1/renew'),
        ('get', '/refractory/batches/trace/B-001'),
        ('get', '/refractory/performance/analytics'),
    ]:
        resp = getattr(client, method)(path, json={}, headers=headers)
        assert resp.status_code == 501, path
        assert resp.get_json()['error']['status'] == 501
