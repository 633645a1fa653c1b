"""Idempotent seeding of permissions, preset roles, the first admin and category types.

Every ``ensure_*`` helper only adds what is missing and returns how many rows
it created; nothing here commits.
"""
from __future__ import annotations
import os
from typing import Dict, List
from flask import current_app
from sqlalchemy import select
from erp.models.authz import Permission, Role, User
from erp.models.equipment import CategoryType, STATUS_ACTIVE
from erp.constants.permissions import ALL_PERMISSION_NAMES, ROLE_PRESETS, SUPERUSER_ROLE, expand_preset
from erp.constants.category_types import DEFAULT_CATEGORY_TYPES


def ensure_permissions(session, names: List[str] = ALL_PERMISSION_NAMES) -> int:
    existing = set(session.execute(select(Permission.name)).scalars())
    missing = [n for n in names if n not in existing]
    session.add_all(Permission(name=n) for n in missing)
    session.flush()
    return len(missing)


def ensure_roles(session) -> int:
    """Create preset roles and grant any preset permissions they lack.

    Permissions granted by hand are left alone.
    """
    roles = {r.name: r for r in session.execute(select(Role)).scalars()}
    available = list(session.execute(select(Permission.name)).scalars())
    by_name = {p.name: p for p in session.execute(select(Permission)).scalars()}
    created = 0
    for role_name, patterns in ROLE_PRESETS.items():
        role = roles.get(role_name)
        if role is None:
            role = Role(name=role_name)
            session.add(role)
            created += 1
        held = {p.name for p in role.permissions}
        for name in expand_preset(patterns, available):
            if name not in held:
                role.permissions.append(by_name[name])
    session.flush()
    return created


def ensure_initial_admin(session) -> int:
    admin_role = session.execute(select(Role).where(Role.name == SUPERUSER_ROLE)).scalar_one_or_none()
    if admin_role is None:
        current_app.logger.warning('%s role missing; skipping admin user creation', SUPERUSER_ROLE)
        return 0
    email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        return 0
    user = User(name='Administrator', email=email, password_hash='')
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    user.roles = [admin_role]
    session.add(user)
    session.flush()
    current_app.logger.info('Created initial admin user %s with temporary password', email)
    return 1


def ensure_category_types(session) -> int:
    existing = set(session.execute(select(CategoryType.slug)).scalars())
    created = 0
    for name, slug, variant in DEFAULT_CATEGORY_TYPES:
        if slug in existing:
            continue
        session.add(CategoryType(name=name, slug=slug, description=name, variant=variant, status=STATUS_ACTIVE))
        created += 1
    session.flush()
    return created


def role_permission_map(session) -> Dict[str, List[str]]:
    return {
        role.name: sorted(p.name for p in role.permissions)
        for role in session.execute(select(Role).order_by(Role.name)).scalars()
    }
