"""Typed per-field request validation.

Each endpoint declares its payload as a mapping of field name -> ``Rule``.
``validate_payload`` checks every field, collects all messages per field and
aborts with a 400 whose error body carries ``fields`` when anything fails.

    CATEGORY_RULES = {
        'name': Rule(str, required=True, max_length=255),
        'sort_order': Rule(int, min_value=0, default=0),
    }
    clean = validate_payload(session, request.json, CATEGORY_RULES)

Blank strings are treated as missing (optional fields take their default).
An empty list is a present value; use ``min_items`` to reject it.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy import select
from werkzeug.exceptions import BadRequest

# signed 64-bit range of an INTEGER column
INT_MIN, INT_MAX = -2 ** 63, 2 ** 63 - 1


class ValidationFailed(BadRequest):
    description = 'The given data was invalid.'

    def __init__(self, fields: Dict[str, List[str]]):
        super().__init__()
        self.fields = fields


@dataclass(frozen=True)
class Rule:
    kind: type = str
    required: bool = False
    max_length: Optional[int] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    min_items: Optional[int] = None
    choices: Optional[Sequence[str]] = None
    # column whose table must not already hold the value (ignoring the record being updated)
    unique: Any = None
    # column that must hold the value, narrowed by ``exists_where`` criteria
    exists: Any = None
    exists_where: tuple = field(default_factory=tuple)
    item: Optional['Rule'] = None
    default: Any = None


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def _coerce(value, kind: type):
    """Return (value, ok). Integers may arrive as digit strings from form posts."""
    if kind is int:
        if isinstance(value, bool):
            return value, False
        if isinstance(value, int):
            return value, True
        if isinstance(value, str):
            try:
                return int(value.strip()), True
            except ValueError:
                return value, False
        return value, False
    if kind is str:
        return (value.strip(), True) if isinstance(value, str) else (value, False)
    if kind is list:
        return value, isinstance(value, list)
    return value, isinstance(value, kind)


_KIND_NAMES = {str: 'a string', int: 'an integer', list: 'an array'}


def _check_value(session, name: str, value, rule: Rule, ignore_id, errors: Dict[str, List[str]]):
    value, ok = _coerce(value, rule.kind)
    if not ok:
        errors.setdefault(name, []).append(f'The {name} field must be {_KIND_NAMES.get(rule.kind, rule.kind.__name__)}.')
        return value
    msgs: List[str] = []
    if rule.max_length is not None and isinstance(value, str) and len(value) > rule.max_length:
        msgs.append(f'The {name} field must not be greater than {rule.max_length} characters.')
    if isinstance(value, int):
        lower = INT_MIN if rule.min_value is None else rule.min_value
        upper = INT_MAX if rule.max_value is None else rule.max_value
        if value < lower:
            msgs.append(f'The {name} field must be at least {lower}.')
        elif value > upper:
            msgs.append(f'The {name} field must not be greater than {upper}.')
    if rule.min_items is not None and isinstance(value, list) and len(value) < rule.min_items:
        msgs.append(f'The {name} field must have at least {rule.min_items} items.')
    if rule.choices is not None and value not in rule.choices:
        msgs.append(f"The selected {name} is invalid; allowed: {', '.join(rule.choices)}.")
    if not msgs and rule.unique is not None:
        model = rule.unique.class_
        stmt = select(model.id).where(rule.unique == value)
        if ignore_id is not None:
            stmt = stmt.where(model.id != ignore_id)
        if session.execute(stmt.limit(1)).first() is not None:
            msgs.append(f'The {name} has already been taken.')
    if not msgs and rule.exists is not None:
        stmt = select(rule.exists).where(rule.exists == value, *rule.exists_where)
        if session.execute(stmt.limit(1)).first() is None:
            msgs.append(f'The selected {name} is invalid.')
    if msgs:
        errors.setdefault(name, []).extend(msgs)
    if rule.item is not None and isinstance(value, list):
        value = [
            _check_value(session, f'{name}.{idx}', element, rule.item, None, errors)
            for idx, element in enumerate(value)
        ]
    return value


def validate_payload(session, data: Optional[Dict[str, Any]], rules: Dict[str, Rule], ignore_id=None) -> Dict[str, Any]:
    """Validate ``data`` against ``rules`` and return the cleaned values.

    Only fields named in ``rules`` are returned. ``ignore_id`` excludes the
    record being updated from uniqueness checks.
    """
    if data is not None and not isinstance(data, dict):
        raise ValidationFailed({'_payload': ['The request body must be a JSON object.']})
    data = data or {}
    errors: Dict[str, List[str]] = {}
    clean: Dict[str, Any] = {}
    for name, rule in rules.items():
        raw = data.get(name)
        if _blank(raw):
            if rule.required:
                errors.setdefault(name, []).append(f'The {name} field is required.')
            else:
                clean[name] = rule.default
            continue
        clean[name] = _check_value(session, name, raw, rule, ignore_id, errors)
    if errors:
        raise ValidationFailed(errors)
    return clean


__all__ = ['Rule', 'ValidationFailed', 'validate_payload']
