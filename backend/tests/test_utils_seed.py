"""Seeding helpers shared by the test modules.

The suite shares one in-memory database, so helpers are get-or-create and
callers pass unique names (see ``unique``).
"""
import uuid
from typing import Dict, Iterable, List
from flask_jwt_extended import create_access_token
from erp import get_db
from erp.models.authz import User, Role, Permission
from erp.models.equipment import CategoryType, Category, Equipment


def unique(prefix: str) -> str:
    return f'{prefix}{uuid.uuid4().hex[:8]}'


def ensure_permissions(names: Iterable[str]) -> Dict[str, Permission]:
    session = get_db()
    out: Dict[str, Permission] = {}
    for name in names:
        perm = session.query(Permission).filter_by(name=name).one_or_none()
        if not perm:
            perm = Permission(name=name)
            session.add(perm); session.flush()
        out[name] = perm
    session.commit()
    return out


def ensure_user(email: str, password: str = 'pw', name: str = None) -> User:
    session = get_db()
    user = session.query(User).filter_by(email=email).one_or_none()
    if not user:
        user = User(name=name or email.split('@')[0], email=email, password_hash='')
        user.set_password(password)
        session.add(user); session.commit()
    return user


def ensure_role(name: str, perm_names: Iterable[str] = ()) -> Role:
    session = get_db()
    perms = ensure_permissions(perm_names)
    role = session.query(Role).filter_by(name=name).one_or_none()
    if not role:
        role = Role(name=name)
        session.add(role)
    for perm in perms.values():
        if perm not in role.permissions:
            role.permissions.append(perm)
    session.commit()
    return role


def assign_roles(user: User, *roles: Role):
    session = get_db()
    for role in roles:
        if role not in user.roles:
            user.roles.append(role)
    session.commit()


def jwt_headers(user_id: int, perms: List[str]):
    token = create_access_token(identity=str(user_id), additional_claims={'perms': perms, 'roles': []})
    return {'Authorization': f'Bearer {token}'}


def admin_headers(perms: List[str]):
    """Headers for a fresh user whose token carries ``perms``."""
    user = ensure_user(f"{unique('admin')}@example.com")
    return jwt_headers(user.id, perms)


def new_category_type(name: str = None, variant: str = 'equipment', status: str = 'active') -> CategoryType:
    session = get_db()
    name = name or unique('Type ')
    t = CategoryType(name=name, slug=unique('type-'), variant=variant, status=status)
    session.add(t); session.commit()
    return t


def new_category(category_type: CategoryType, name: str = None, **fields) -> Category:
    session = get_db()
    c = Category(
        name=name or unique('Category '),
        slug=fields.pop('slug', None) or unique('cat-'),
        category_type_id=category_type.id,
        status=fields.pop('status', 'active'),
        **fields,
    )
    session.add(c); session.commit()
    return c


def new_equipment(category: Category) -> Equipment:
    session = get_db()
    e = Equipment(category_id=category.id, code=unique('EQ-'), make='Caterpillar', model='320D', serial_no=unique('SN-'))
    session.add(e); session.commit()
    return e
