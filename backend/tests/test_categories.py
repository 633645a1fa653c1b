from sqlalchemy import select
from tests.test_utils_seed import admin_headers, new_category_type, new_category, new_equipment, unique
from erp import get_db
from erp.models.equipment import Category

PERMS = ['categories.read', 'categories.create', 'categories.update', 'categories.delete']
BASE = '/equipment/categories'


def _payload(category_type, **over):
    data = {'name': unique('Excavators '), 'category_type_id': category_type.id, 'status': 'active'}
    data.update(over)
    return data


def test_create_category(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    resp = client.post(BASE, json=_payload(t, hsn='8429', sort_order='3'), headers=headers)
    assert resp.status_code == 201, resp.get_json()
    data = resp.get_json()['data']
    assert data['category_type'] == {'id': t.id, 'name': t.name}
    assert data['sort_order'] == 3
    assert data['hsn'] == '8429'
    default_order = client.post(BASE, json=_payload(t), headers=headers)
    assert default_order.get_json()['data']['sort_order'] == 0


def test_duplicate_slug_is_rejected(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    existing = new_category(t)
    resp = client.post(BASE, json=_payload(t, slug=existing.slug), headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['fields']['slug'] == ['The slug has already been taken.']
    # soft-deleted rows still own their slug
    existing.soft_delete(); get_db().commit()
    again = client.post(BASE, json=_payload(t, slug=existing.slug), headers=headers)
    assert again.status_code == 400


def test_category_type_must_be_live(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    t.soft_delete(); get_db().commit()
    resp = client.post(BASE, json=_payload(t), headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['fields']['category_type_id'] == ['The selected category_type_id is invalid.']
    missing = client.post(BASE, json={'name': 'No type', 'status': 'active'}, headers=headers)
    assert 'category_type_id' in missing.get_json()['error']['fields']


def test_sort_order_must_be_non_negative_integer(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    negative = client.post(BASE, json=_payload(t, sort_order=-1), headers=headers)
    assert negative.status_code == 400
    assert 'sort_order' in negative.get_json()['error']['fields']
    text = client.post(BASE, json=_payload(t, sort_order='first'), headers=headers)
    assert text.status_code == 400


def test_list_filters_sort_and_counts(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    other = new_category_type()
    b = new_category(t, name=unique('Bravo '), sort_order=2, hsn='HSN-77')
    a = new_category(t, name=unique('Alpha '), sort_order=1)
    new_category(other)
    new_equipment(b)
    gone = new_equipment(b)
    gone.soft_delete(); get_db().commit()
    resp = client.get(f'{BASE}?category_type_id={t.id}&sort=-sort_order', headers=headers)
    assert resp.status_code == 200
    rows = resp.get_json()['data']
    assert [r['id'] for r in rows] == [b.id, a.id]
    assert rows[0]['equipment_count'] == 1
    assert rows[1]['equipment_count'] == 0
    by_hsn = client.get(f'{BASE}?category_type_id={t.id}&search=hsn-77', headers=headers).get_json()['data']
    assert [r['id'] for r in by_hsn] == [b.id]
    assert client.get(f'{BASE}?category_type_id=abc', headers=headers).status_code == 400
    assert client.get(f'{BASE}?sort=colour', headers=headers).status_code == 400


def test_update_category(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    c = new_category(t)
    sibling = new_category(t)
    clash = client.put(f'{BASE}/{c.id}', json=_payload(t, name=c.name, slug=sibling.slug), headers=headers)
    assert clash.status_code == 400
    ok = client.put(f'{BASE}/{c.id}', json=_payload(t, name=c.name, slug=c.slug, sort_order=9), headers=headers)
    assert ok.status_code == 200
    assert ok.get_json()['data']['sort_order'] == 9
    c.soft_delete(); get_db().commit()
    assert client.put(f'{BASE}/{c.id}', json=_payload(t), headers=headers).status_code == 404
    assert client.put(f'{BASE}/{c.id}/status', json={'status': 'inactive'}, headers=headers).status_code == 404


def test_delete_refused_while_equipment_attached(client, app_ctx):
    headers = admin_headers(PERMS)
    c = new_category(new_category_type())
    new_equipment(c)
    resp = client.delete(f'{BASE}/{c.id}', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'error'
    get_db().expire_all()
    assert get_db().execute(select(Category).where(Category.id == c.id)).scalar_one().deleted_at is None


def test_delete_ignores_soft_deleted_equipment(client, app_ctx):
    headers = admin_headers(PERMS)
    c = new_category(new_category_type())
    e = new_equipment(c)
    e.soft_delete(); get_db().commit()
    resp = client.delete(f'{BASE}/{c.id}', headers=headers)
    assert resp.get_json()['status'] == 'success'


def test_restore_brings_category_back(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    c = new_category(t)
    client.delete(f'{BASE}/{c.id}', headers=headers)
    assert client.get(f'{BASE}?category_type_id={t.id}', headers=headers).get_json()['data'] == []
    with_trashed = client.get(f'{BASE}?category_type_id={t.id}&trashed=with', headers=headers).get_json()['data']
    assert [r['id'] for r in with_trashed] == [c.id]
    restored = client.post(f'{BASE}/{c.id}/restore', headers=headers)
    assert restored.get_json()['data']['deleted_at'] is None
    rows = client.get(f'{BASE}?category_type_id={t.id}', headers=headers).get_json()['data']
    assert [r['id'] for r in rows] == [c.id]
    assert rows[0]['deleted_at'] is None


def test_status_toggle(client, app_ctx):
    headers = admin_headers(PERMS)
    c = new_category(new_category_type())
    assert client.put(f'{BASE}/{c.id}/status', json={'status': 'inactive'}, headers=headers).get_json()['data']['status'] == 'inactive'
    assert client.put(f'{BASE}/{c.id}/status', json={'status': 'active'}, headers=headers).get_json()['data']['status'] == 'active'
    assert client.put(f'{BASE}/{c.id}/status', json={}, headers=headers).status_code == 400


def test_category_endpoints_require_permissions(client, app_ctx):
    headers = admin_headers(['categories.read'])
    c = new_category(new_category_type())
    assert client.delete(f'{BASE}/{c.id}', headers=headers).status_code == 403
    assert client.get(BASE).status_code == 401


def test_bad_sort_order_is_a_field_error(client, app_ctx):
    headers = admin_headers(PERMS)
    t = new_category_type()
    for raw in ('--5', '²', 10 ** 20):
        resp = client.post(BASE, json=_payload(t, sort_order=raw), headers=headers)
        assert resp.status_code == 400, raw
        assert list(resp.get_json()['error']['fields']) == ['sort_order']


def test_restore_refused_while_category_type_is_deleted(client, app_ctx):
    headers = admin_headers(PERMS + ['category_types.delete', 'category_types.update'])
    t = new_category_type()
    c = new_category(t)
    client.delete(f'{BASE}/{c.id}', headers=headers)
    assert client.delete(f'/equipment/category-types/{t.id}', headers=headers).get_json()['status'] == 'success'
    refused = client.post(f'{BASE}/{c.id}/restore', headers=headers)
    assert refused.status_code == 200
    assert refused.get_json()['status'] == 'error'
    get_db().expire_all()
    assert get_db().execute(select(Category).where(Category.id == c.id)).scalar_one().deleted_at is not None
    client.post(f'/equipment/category-types/{t.id}/restore', headers=headers)
    restored = client.post(f'{BASE}/{c.id}/restore', headers=headers)
    assert restored.get_json()['status'] == 'success'
    assert restored.get_json()['data']['deleted_at'] is None
