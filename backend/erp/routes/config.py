from flask import Blueprint, request
from sqlalchemy import select
from erp import get_db
from erp.models.authz import User, Role, Permission
from erp.services import authz as authz_service
from erp.utils.filters import apply_filters, like_pattern
from erp.utils.listing import apply_pagination, respond_list
from erp.utils.sorting import apply_multi_sort
from erp.utils.envelopes import success
from erp.decorators.audit import audit_log
from erp.decorators.auth import require_permissions

config_bp = Blueprint('config', __name__)


def _permission_json(p: Permission):
    return {'id': p.id, 'name': p.name, 'module': p.module, 'action': p.action}


def _role_json(r: Role):
    return {'id': r.id, 'name': r.name, 'permissions': [_permission_json(p) for p in r.permissions]}


def _user_json(u: User):
    return {'id': u.id, 'name': u.name, 'email': u.email, 'is_active': u.is_active, 'roles': [r.name for r in u.roles]}


# --- Roles ---

@config_bp.get('/roles')
@require_permissions('roles.read')
def list_roles():
    session = get_db()
    q = session.query(Role)
    q = apply_filters(q, {
        'search': {'op': lambda q, v: q.filter(Role.name.ilike(like_pattern(v), escape='\\'))},
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {'name': Role.name, 'id': Role.id}, Role.id)
    q, total, limit, offset = apply_pagination(q)
    rows = q.all()
    return respond_list([_role_json(r) for r in rows], rows, total, limit, offset)


@config_bp.post('/roles/add')
@require_permissions('roles.create')
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['name'])
def create_role():
    role = authz_service.create_role(request.get_json(silent=True))
    return success('Role created successfully.', _role_json(role)), 201


@config_bp.post('/roles/assign-permissions')
@require_permissions('roles.update')
@audit_log(
    'ROLE.PERMISSIONS.SYNC',
    entity='Role',
    entity_id_key='id',
    meta_builder=lambda data, rv, a, kw: {'permission_ids': [p['id'] for p in data.get('permissions', [])]},
)
def assign_permissions():
    role = authz_service.sync_role_permissions(request.get_json(silent=True))
    return success('Permissions assigned successfully.', _role_json(role))


# --- Permissions ---

@config_bp.get('/permissions')
@require_permissions('permissions.read')
def list_permissions():
    session = get_db()
    q = session.query(Permission)
    q = apply_filters(q, {
        'module': {'op': lambda q, v: q.filter(Permission.name.startswith(f'{v}.', autoescape=True))},
        'search': {'op': lambda q, v: q.filter(Permission.name.ilike(like_pattern(v), escape='\\'))},
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {'name': Permission.name, 'id': Permission.id}, Permission.id)
    q, total, limit, offset = apply_pagination(q)
    rows = q.all()
    return respond_list([_permission_json(p) for p in rows], rows, total, limit, offset)


@config_bp.get('/permissions/modules')
@require_permissions('permissions.read')
def list_permission_modules():
    session = get_db()
    perms = session.execute(select(Permission)).scalars().all()
    grouped = authz_service.group_by_module(perms)
    return {'data': [{'module': module, 'permissions': items} for module, items in grouped.items()]}


@config_bp.post('/permissions/add')
@require_permissions('permissions.create')
@audit_log('PERMISSION.MODULE.CREATE', entity='Permission', meta_keys=['module', 'created', 'skipped'])
def create_permission_group():
    created, skipped = authz_service.create_permission_group(request.get_json(silent=True))
    module = (request.get_json(silent=True) or {}).get('module', '').strip()
    message = 'Permissions created successfully.' if created else 'All permissions already exist.'
    data = {
        'module': module,
        'created': [p.name for p in created],
        'skipped': skipped,
        'permissions': [_permission_json(p) for p in created],
    }
    return success(message, data), 201 if created else 200


def _permission_snapshot(permission_id: int):
    perm = get_db().execute(select(Permission).where(Permission.id == permission_id)).scalar_one_or_none()
    return {'name': perm.name} if perm else {}


@config_bp.put('/permissions/<int:permission_id>')
@require_permissions('permissions.update')
@audit_log(
    'PERMISSION.UPDATE',
    entity='Permission',
    entity_id_key='id',
    meta_keys=['name'],
    diff_keys=['name'],
    pre_fetch=lambda a, kw: _permission_snapshot(kw.get('permission_id')),
)
def update_permission(permission_id: int):
    perm = authz_service.rename_permission(permission_id, request.get_json(silent=True))
    return success('Permission updated successfully.', _permission_json(perm))


@config_bp.delete('/permissions/<int:permission_id>')
@require_permissions('permissions.delete')
@audit_log('PERMISSION.DELETE', entity='Permission', entity_id_arg='permission_id', meta_keys=['name'])
def delete_permission(permission_id: int):
    name = authz_service.delete_permission(permission_id)
    return success('Permission deleted successfully.', {'id': permission_id, 'name': name})


@config_bp.delete('/permissions/modules/<module>')
@require_permissions('permissions.delete')
@audit_log('PERMISSION.MODULE.DELETE', entity='Permission', meta_keys=['module', 'deleted'])
def delete_permission_module(module: str):
    names = authz_service.delete_permission_module(module)
    return success(
        f'Module "{module}" deleted successfully.',
        {'module': module, 'deleted': names, 'deleted_count': len(names)},
    )


# --- Users ---

@config_bp.get('/users')
@require_permissions('users.read')
def list_users():
    session = get_db()
    q = session.query(User)
    q = apply_filters(q, {
        'search': {'op': lambda q, v: q.filter(
            User.name.ilike(like_pattern(v), escape='\\') | User.email.ilike(like_pattern(v), escape='\\')
        )},
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {'name': User.name, 'email': User.email, 'id': User.id}, User.id)
    q, total, limit, offset = apply_pagination(q)
    rows = q.all()
    return respond_list([_user_json(u) for u in rows], rows, total, limit, offset)


@config_bp.post('/users/assign-roles')
@require_permissions('users.update')
@audit_log('USER.ROLES.SYNC', entity='User', entity_id_key='id', meta_keys=['roles'])
def assign_roles():
    user = authz_service.sync_user_roles(request.get_json(silent=True))
    return success('Roles assigned successfully.', _user_json(user))
