from __future__ import annotations
from typing import Any, Dict
from flask import abort


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Apply query-string filters described by ``specs``.

    specs: { param_name: { 'op': callable(query, value)->query,
                           'coerce': callable (optional),
                           'choices': iterable of accepted values (optional) } }
    Blank parameters are ignored.
    """
    for name, meta in specs.items():
        val = params.get(name)
        if val is None or val == '':
            continue
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                abort(400, description=f'{name} invalid')
        if 'choices' in meta and val not in meta['choices']:
            abort(400, description=f"{name} must be one of: {', '.join(meta['choices'])}")
        query = meta['op'](query, val)
    return query


def like_pattern(term: str) -> str:
    """Substring LIKE pattern with the wildcard characters escaped (escape char '\\')."""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'
