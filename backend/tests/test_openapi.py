def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    for path in ('/auth/login', '/data/config/roles/assign-permissions', '/equipment/categories/{record_id}/restore', '/refractory/data/batches'):
        assert path in body['paths'], path


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'redoc' in resp.data


def test_sort_parameter_components_and_usage(client):
    spec = client.get('/openapi.json').get_json()
    comps = spec['components']['parameters']
    for path, comp in {'/equipment/category-types': 'SortCategoryTypeParam', '/equipment/categories': 'SortCategoryParam'}.items():
        assert comp in comps
        params = spec['paths'][path]['get']['parameters']
        assert any(p.get('$ref', '').endswith(comp) for p in params)
        hdrs = spec['paths'][path]['get']['responses']['200']['headers']
        for h in ('ETag', 'Last-Modified', 'X-Last-Modified-ISO'):
            assert h in hdrs


def test_required_permissions_documented(client):
    paths = client.get('/openapi.json').get_json()['paths']
    assert paths['/data/config/permissions/modules/{module}']['delete']['x-required-permissions'] == ['permissions.delete']
    assert paths['/equipment/categories']['post']['x-required-permissions'] == ['categories.create']


def test_openapi_is_deterministic(client):
    assert client.get('/openapi.json').data == client.get('/openapi.json').data
