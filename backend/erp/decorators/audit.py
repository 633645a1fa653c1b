from __future__ import annotations
"""Audit logging decorator for mutating route handlers.

Usage examples:

@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['name'])
def create_role():
    ... return {'status': 'success', 'message': ..., 'data': {'id': role.id, 'name': role.name}}, 201

@audit_log('CATEGORY.UPDATE', entity='Category', entity_id_arg='category_id',
           diff_keys=['name', 'slug'], pre_fetch=lambda a, kw: _snapshot(kw['category_id']))
def update_category(category_id): ...

Parameters:
  action: audit action code (e.g. ROLE.CREATE)
  entity: optional entity label (Role, Permission, Category, ...)
  entity_id_key: key in the returned record whose value becomes entity_id.
  entity_id_arg: view argument used for entity_id when the key is absent.
  meta_keys: keys projected from the returned record into meta.
  meta_builder: callable(record, rv, args, kwargs) -> meta dict; overrides meta_keys.
  diff_keys / pre_fetch: record a before/after diff of these keys; pre_fetch
    returns the "before" snapshot and runs ahead of the handler.

The handler's return value may be a dict or a (dict, status[, headers])
tuple. Success envelopes carry the record under ``data``; that record is
what the keys above are read from. Refusal envelopes (``status == 'error'``)
are not audited. The decorator commits the request session afterwards.
"""

from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import current_app

from erp import get_db
from erp.services.audit import add_audit


def _extract_record(rv: Any):
    body = rv[0] if isinstance(rv, tuple) and rv else rv
    if not isinstance(body, dict):
        return body, None
    record = body.get('data') if isinstance(body.get('data'), dict) else body
    return body, record


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    return {
        k: {'before': before.get(k), 'after': after.get(k)}
        for k in keys
        if k in before and k in after and before.get(k) != after.get(k)
    }


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            body, record = _extract_record(rv)
            if isinstance(body, dict) and body.get('status') == 'error':
                current_app.logger.debug('%s refused; not audited', action)
                get_db().commit()
                return rv
            entity_id = None
            if record and entity_id_key and entity_id_key in record:
                entity_id = record.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta = None
            if meta_builder:
                meta = meta_builder(record or {}, rv, args, kwargs)
            elif meta_keys and record:
                meta = {k: record.get(k) for k in meta_keys if k in record}
            if before and record:
                changes = _diff(before, record, diff_keys)
                if changes:
                    meta = dict(meta or {})
                    meta['changes'] = changes
            add_audit(action, entity, entity_id, meta)
            get_db().commit()
            return rv
        return wrapper
    return outer
