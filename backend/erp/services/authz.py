"""Role / permission / user assignment.

Permission names follow ``<module>.<action>``. Role->permission and
user->role assignments always replace the whole set; calling them twice with
the same input leaves the same state. Nothing here commits: the request
handler owns the transaction.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
from flask import abort, current_app
from sqlalchemy import select
from erp import get_db
from erp.models.authz import Permission, Role, User, CRUD_ACTIONS, split_permission_name
from erp.utils.validation import Rule, ValidationFailed, validate_payload

ROLE_RULES = {
    'name': Rule(str, required=True, max_length=255, unique=Role.name),
}

PERMISSION_GROUP_RULES = {
    # leaves room for the longest ".action" suffix within the 255 char name
    'module': Rule(str, required=True, max_length=255 - len('.create')),
    'actions': Rule(list, required=True, min_items=1, item=Rule(str, choices=CRUD_ACTIONS)),
}

ROLE_PERMISSIONS_RULES = {
    'role_id': Rule(int, required=True),
    'permission_ids': Rule(list, required=True, item=Rule(int, exists=Permission.id)),
}

USER_ROLES_RULES = {
    'user_id': Rule(int, required=True),
    'roles': Rule(list, required=True, item=Rule(str)),
}


def _check_module(module: str, field: str = 'module'):
    if '.' in module or any(ch.isspace() for ch in module):
        raise ValidationFailed({field: [f'The {field} may not contain dots or whitespace.']})


def create_role(payload: Optional[Dict[str, Any]]) -> Role:
    session = get_db()
    data = validate_payload(session, payload, ROLE_RULES)
    role = Role(name=data['name'])
    session.add(role)
    session.flush()
    current_app.logger.info('Role %s created (id=%s)', role.name, role.id)
    return role


def create_permission_group(payload: Optional[Dict[str, Any]]) -> Tuple[List[Permission], List[str]]:
    """Create ``module.action`` for every requested action.

    Combinations that already exist are skipped, so repeating the call is
    harmless. Returns (created permissions, skipped names).
    """
    session = get_db()
    data = validate_payload(session, payload, PERMISSION_GROUP_RULES)
    module = data['module']
    _check_module(module)
    names = []
    for action in data['actions']:
        name = f'{module}.{action}'
        if name not in names:
            names.append(name)
    existing = set(session.execute(select(Permission.name).where(Permission.name.in_(names))).scalars())
    created = [Permission(name=n) for n in names if n not in existing]
    session.add_all(created)
    session.flush()
    skipped = [n for n in names if n in existing]
    current_app.logger.info('Permission module %s: created=%s skipped=%s', module, [p.name for p in created], skipped)
    return created, skipped


def get_permission_or_404(permission_id: int) -> Permission:
    session = get_db()
    perm = session.execute(select(Permission).where(Permission.id == permission_id)).scalar_one_or_none()
    if not perm:
        abort(404, description=f'Permission {permission_id} not found')
    return perm


def rename_permission(permission_id: int, payload: Optional[Dict[str, Any]]) -> Permission:
    session = get_db()
    perm = get_permission_or_404(permission_id)
    rules = {'name': Rule(str, required=True, max_length=255, unique=Permission.name)}
    data = validate_payload(session, payload, rules, ignore_id=perm.id)
    module, action = split_permission_name(data['name'])
    if not module or action not in CRUD_ACTIONS:
        raise ValidationFailed({'name': [f"The name must look like <module>.<action> with action one of: {', '.join(CRUD_ACTIONS)}."]})
    _check_module(module, 'name')
    old = perm.name
    perm.name = data['name']
    session.flush()
    current_app.logger.info('Permission %s renamed to %s', old, perm.name)
    return perm


def delete_permission(permission_id: int) -> str:
    session = get_db()
    perm = get_permission_or_404(permission_id)
    name = perm.name
    # deleting through the ORM also clears role_permissions rows
    session.delete(perm)
    session.flush()
    current_app.logger.info('Permission %s deleted', name)
    return name


def delete_permission_module(module: str) -> List[str]:
    """Delete every permission named ``module.<anything>`` and its role links."""
    session = get_db()
    module = (module or '').strip()
    if not module:
        raise ValidationFailed({'module': ['The module field is required.']})
    _check_module(module)
    perms = session.execute(
        select(Permission).where(Permission.name.startswith(f'{module}.', autoescape=True))
    ).scalars().all()
    names = sorted(p.name for p in perms)
    for perm in perms:
        session.delete(perm)
    session.flush()
    current_app.logger.info('Permission module %s deleted (%d permissions)', module, len(names))
    return names


def sync_role_permissions(payload: Optional[Dict[str, Any]]) -> Role:
    """Make the role's permission set exactly ``permission_ids``."""
    session = get_db()
    data = validate_payload(session, payload, {'role_id': ROLE_PERMISSIONS_RULES['role_id']})
    role = session.execute(select(Role).where(Role.id == data['role_id'])).scalar_one_or_none()
    if not role:
        abort(404, description=f"Role {data['role_id']} not found")
    data = validate_payload(session, payload, ROLE_PERMISSIONS_RULES)
    wanted = list(dict.fromkeys(data['permission_ids']))
    perms = session.execute(select(Permission).where(Permission.id.in_(wanted))).scalars().all() if wanted else []
    role.permissions = sorted(perms, key=lambda p: p.id)
    session.flush()
    current_app.logger.info('Role %s permissions set to %s', role.name, [p.id for p in role.permissions])
    return role


def sync_user_roles(payload: Optional[Dict[str, Any]]) -> User:
    """Make the user's role set exactly the named roles.

    Unknown user or any unknown role name aborts with 404 before anything
    changes.
    """
    session = get_db()
    data = validate_payload(session, payload, USER_ROLES_RULES)
    user = session.execute(select(User).where(User.id == data['user_id'])).scalar_one_or_none()
    if not user:
        abort(404, description=f"User {data['user_id']} not found")
    wanted = list(dict.fromkeys(data['roles']))
    roles = session.execute(select(Role).where(Role.name.in_(wanted))).scalars().all() if wanted else []
    missing = sorted(set(wanted) - {r.name for r in roles})
    if missing:
        abort(404, description=f'Unknown roles: {missing}')
    user.roles = sorted(roles, key=lambda r: r.id)
    session.flush()
    current_app.logger.info('User %s roles set to %s', user.id, [r.name for r in user.roles])
    return user


def group_by_module(perms) -> Dict[str, List[Dict[str, Any]]]:
    """Group permissions under their module prefix, modules sorted by name."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for p in sorted(perms, key=lambda p: p.id):
        grouped.setdefault(p.module, []).append({'id': p.id, 'name': p.name, 'action': p.action})
    return dict(sorted(grouped.items()))
