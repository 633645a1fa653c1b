"""Soft-delete lifecycle shared by the equipment taxonomy models.

A record is *live* while ``deleted_at`` is NULL. Default listings filter on
``live()``; restore clears the timestamp again.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


class SoftDeleteMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def live(cls):
        """Criterion selecting rows that are not soft-deleted."""
        return cls.deleted_at.is_(None)

    @classmethod
    def trashed(cls):
        return cls.deleted_at.is_not(None)

    def soft_delete(self):
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        self.deleted_at = None

__all__ = ["SoftDeleteMixin"]
