from __future__ import annotations
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, Table, Column, DateTime, text
from typing import List, Tuple

Base = declarative_base()

CRUD_ACTIONS = ('create', 'read', 'update', 'delete')

# Plain association tables; the composite primary key keeps each pair unique
role_permissions = Table(
    'role_permissions',
    Base.metadata,
    Column('role_id', ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    Column('permission_id', ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
)

user_roles = Table(
    'user_roles',
    Base.metadata,
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('role_id', ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
)


def split_permission_name(name: str) -> Tuple[str, str]:
    """Split ``module.action`` on the first dot; action is '' when absent."""
    module, _, action = name.partition('.')
    return module, action


class Permission(Base):
    __tablename__ = 'permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=text('CURRENT_TIMESTAMP'))

    roles: Mapped[List['Role']] = relationship(secondary=role_permissions, back_populates='permissions')

    @property
    def module(self) -> str:
        return split_permission_name(self.name)[0]

    @property
    def action(self) -> str:
        return split_permission_name(self.name)[1]

    def __repr__(self) -> str:
        return f'<Permission {self.name}>'


class Role(Base):
    __tablename__ = 'roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=text('CURRENT_TIMESTAMP'))

    permissions: Mapped[List[Permission]] = relationship(secondary=role_permissions, back_populates='roles', order_by='Permission.id')
    users: Mapped[List['User']] = relationship(secondary=user_roles, back_populates='roles')

    def __repr__(self) -> str:
        return f'<Role {self.name}>'


class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=text('CURRENT_TIMESTAMP'))

    roles: Mapped[List[Role]] = relationship(secondary=user_roles, back_populates='users', order_by='Role.id')

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)
