from __future__ import annotations
from typing import Any, Dict, Optional
from flask import has_request_context
from flask_jwt_extended import get_jwt_identity
from erp import get_db
from erp.models.audit import AuditLog


def _current_actor() -> int:
    if not has_request_context():
        return 0  # scripts / seeding
    try:
        ident = get_jwt_identity()
    except RuntimeError:
        # request without a verified token (e.g. login)
        return 0
    return int(ident) if ident is not None else 0


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit log entry in the current DB session.

    Parameters:
      action: short action code e.g. ROLE.CREATE, ROLE.PERMISSIONS.SYNC, CATEGORY.DELETE
      entity: optional entity name (Role, Category, ...)
      entity_id: optional primary key
      meta: additional JSON-safe dictionary (shallow copied)
    """
    session = get_db()
    log = AuditLog(
        actor_user_id=_current_actor(),
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
