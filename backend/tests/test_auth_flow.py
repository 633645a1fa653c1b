from flask_jwt_extended import create_access_token, decode_token
from tests.test_utils_seed import ensure_user, ensure_role, ensure_permissions, assign_roles, unique
from erp import get_db
from erp.models.authz import Permission


def _login(client, email, password='pw'):
    return client.post('/auth/login', json={'email': email, 'password': password})


def test_login_embeds_roles_and_permissions(client, app_ctx):
    email = f"{unique('viewer')}@example.com"
    user = ensure_user(email)
    role = ensure_role(unique('Viewer'), ['categories.read', 'category_types.read'])
    assign_roles(user, role)
    resp = _login(client, email)
    assert resp.status_code == 200
    claims = decode_token(resp.get_json()['access_token'])
    assert claims['sub'] == str(user.id)
    assert claims['roles'] == [role.name]
    assert claims['perms'] == ['categories.read', 'category_types.read']


def test_me_returns_current_user(client, app_ctx):
    email = f"{unique('me')}@example.com"
    user = ensure_user(email, name='Me Myself')
    token = _login(client, email).get_json()['access_token']
    resp = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['id'] == user.id
    assert body['email'] == email
    assert body['roles'] == []


def test_admin_role_holds_every_permission(client, app_ctx):
    email = f"{unique('root')}@example.com"
    user = ensure_user(email)
    assign_roles(user, ensure_role('admin'))
    resp = _login(client, email)
    perms = set(decode_token(resp.get_json()['access_token'])['perms'])
    all_names = {p.name for p in get_db().query(Permission).all()}
    assert perms == all_names


def test_login_rejects_bad_credentials(client, app_ctx):
    email = f"{unique('bad')}@example.com"
    ensure_user(email)
    resp = _login(client, email, password='wrong')
    assert resp.status_code == 401
    assert resp.get_json()['error']['detail'] == 'invalid credentials'
    assert _login(client, 'nobody@example.com').status_code == 401


def test_login_requires_email_and_password(client):
    resp = client.post('/auth/login', json={'email': 'x@example.com'})
    assert resp.status_code == 400


def test_inactive_user_cannot_login(client, app_ctx):
    email = f"{unique('gone')}@example.com"
    user = ensure_user(email)
    user.is_active = False
    get_db().commit()
    assert _login(client, email).status_code == 401


def test_me_requires_token(client):
    assert client.get('/auth/me').status_code == 401


def test_admin_keeps_access_after_guarding_permissions_are_deleted(client, app_ctx):
    email = f"{unique('root')}@example.com"
    user = ensure_user(email)
    assign_roles(user, ensure_role('admin'))
    guard = ['permissions.read', 'permissions.create', 'permissions.update', 'permissions.delete']
    ensure_permissions(guard)
    token = _login(client, email).get_json()['access_token']
    headers = {'Authorization': f'Bearer {token}'}
    resp = client.delete('/data/config/permissions/modules/permissions', headers=headers)
    assert resp.status_code == 200
    relogin = _login(client, email).get_json()['access_token']
    assert not any(p.startswith('permissions.') for p in decode_token(relogin)['perms'])
    listed = client.get('/data/config/permissions', headers={'Authorization': f'Bearer {relogin}'})
    assert listed.status_code == 200
    ensure_permissions(guard)


def test_admin_role_claim_passes_every_check(client, app_ctx):
    user = ensure_user(f"{unique('root')}@example.com")
    token = create_access_token(identity=str(user.id), additional_claims={'perms': [], 'roles': ['admin']})
    resp = client.get('/data/config/users', headers={'Authorization': f'Bearer {token}'})
    assert resp.status_code == 200
    denied = create_access_token(identity=str(user.id), additional_claims={'perms': [], 'roles': ['viewer']})
    assert client.get('/data/config/users', headers={'Authorization': f'Bearer {denied}'}).status_code == 403
