from __future__ import annotations
from flask import abort


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker):
    """Order a query by a comma-separated sort expression.

    Each token is a key of ``allowed`` optionally prefixed with '-' for
    descending order (``sort_order,-name``). ``tie_breaker`` is always
    appended so paging stays deterministic.
    """
    clauses = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token.lstrip('-')
        col = allowed.get(key)
        if col is None:
            abort(400, description=f"Invalid sort field {key}; allowed: {', '.join(sorted(allowed))}")
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
