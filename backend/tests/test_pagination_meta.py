from tests.test_utils_seed import admin_headers, new_category_type, new_category

PERMS = ['categories.read']


def _seed(n):
    t = new_category_type()
    return t, [new_category(t, sort_order=i) for i in range(n)]


def test_pagination_block(client, app_ctx):
    headers = admin_headers(PERMS)
    t, cats = _seed(5)
    resp = client.get(f'/equipment/categories?category_type_id={t.id}&limit=2&offset=1&sort=sort_order', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['pagination'] == {'total': 5, 'limit': 2, 'offset': 1, 'returned': 2}
    assert [r['id'] for r in body['data']] == [cats[1].id, cats[2].id]


def test_limit_is_clamped_and_validated(client, app_ctx, app_instance):
    headers = admin_headers(PERMS)
    t, _ = _seed(1)
    big = client.get(f'/equipment/categories?category_type_id={t.id}&limit=100000', headers=headers)
    assert big.get_json()['pagination']['limit'] == app_instance.config['MAX_PAGE_LIMIT']
    bad = client.get('/equipment/categories?limit=ten', headers=headers)
    assert bad.status_code == 400
    assert bad.get_json()['error']['detail'] == 'limit/offset must be int'


def test_etag_and_last_modified_conditionals(client, app_ctx):
    headers = admin_headers(PERMS)
    t, _ = _seed(2)
    url = f'/equipment/categories?category_type_id={t.id}'
    first = client.get(url, headers=headers)
    etag = first.headers.get('ETag')
    assert etag
    assert first.headers.get('Last-Modified')
    second = client.get(url, headers={**headers, 'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
    third = client.get(url, headers={**headers, 'If-Modified-Since': first.headers['Last-Modified']})
    assert third.status_code == 304
    stale = client.get(url, headers={**headers, 'If-None-Match': 'not-the-tag'})
    assert stale.status_code == 200


def test_etag_changes_with_content(client, app_ctx):
    headers = admin_headers(PERMS)
    t, _ = _seed(1)
    url = f'/equipment/categories?category_type_id={t.id}'
    before = client.get(url, headers=headers).headers['ETag']
    new_category(t)
    after = client.get(url, headers={**headers, 'If-None-Match': before})
    assert after.status_code == 200
    assert after.headers['ETag'] != before


def test_head_returns_headers_only(client, app_ctx):
    headers = admin_headers(PERMS)
    t, _ = _seed(1)
    resp = client.head(f'/equipment/categories?category_type_id={t.id}', headers=headers)
    assert resp.status_code == 200
    assert resp.headers.get('ETag')
    assert resp.data == b''
