from __future__ import annotations
from typing import List, Optional
from sqlalchemy import Integer, String, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .authz import Base
from .lifecycle import SoftDeleteMixin

STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'
ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)


class CategoryType(SoftDeleteMixin, Base):
    __tablename__ = 'category_types'
    VARIANT_EQUIPMENT = 'equipment'
    VARIANT_SCAFFOLDING = 'scaffolding'
    ALL_VARIANTS = (VARIANT_EQUIPMENT, VARIANT_SCAFFOLDING)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variant: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACTIVE, index=True)

    categories: Mapped[List['Category']] = relationship(back_populates='category_type')


class Category(SoftDeleteMixin, Base):
    __tablename__ = 'categories'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_type_id: Mapped[int] = mapped_column(ForeignKey('category_types.id'), nullable=False, index=True)
    hsn: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACTIVE, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category_type: Mapped[CategoryType] = relationship(back_populates='categories')
    equipment: Mapped[List['Equipment']] = relationship(back_populates='category')

    __table_args__ = (CheckConstraint('sort_order >= 0', name='ck_categories_sort_order'),)


class Equipment(SoftDeleteMixin, Base):
    """Equipment unit; only the columns the taxonomy guards and counts rely on."""
    __tablename__ = 'equipment'
    STATUS_MAINTENANCE = 'maintenance'
    STATUS_RETIRED = 'retired'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_MAINTENANCE, STATUS_RETIRED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey('categories.id'), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    make: Mapped[str] = mapped_column(String(255), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_no: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACTIVE, index=True)

    category: Mapped[Category] = relationship(back_populates='equipment')

__all__ = ["CategoryType", "Category", "Equipment", "ALL_STATUSES", "STATUS_ACTIVE", "STATUS_INACTIVE"]
