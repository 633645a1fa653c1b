from __future__ import annotations
from typing import Dict, List, Set
from flask_jwt_extended import get_jwt
from sqlalchemy import select
from erp.models.authz import User, Permission
from erp.constants.permissions import SUPERUSER_ROLE
from erp import get_db


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def is_superuser() -> bool:
    """True when the token carries the superuser role, which passes every permission check."""
    return SUPERUSER_ROLE in get_jwt().get('roles', [])


def compute_effective_permissions(user_id: int) -> Dict[str, List[str]]:
    """Role names and permission names a user holds.

    Holders of the superuser role receive every permission that exists.
    """
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if user is None:
        return {'roles': [], 'perms': []}
    role_names = [r.name for r in user.roles]
    if SUPERUSER_ROLE in role_names:
        perm_names = set(session.execute(select(Permission.name)).scalars())
    else:
        perm_names = {p.name for r in user.roles for p in r.permissions}
    return {
        'roles': sorted(role_names),
        'perms': sorted(perm_names),
    }
