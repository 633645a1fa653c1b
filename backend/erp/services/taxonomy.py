"""Category type / category lifecycle: create, update, status, soft delete, restore.

Both resources share the same shape, so every operation takes a
``TaxonomyResource`` describing the model, its validation rules and the
dependents that block deletion.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from flask import abort, current_app
from sqlalchemy import select, func
from erp import get_db
from erp.models.equipment import CategoryType, Category, Equipment, ALL_STATUSES
from erp.utils.fsm import STATUS_TOGGLE_FSM
from erp.utils.slugs import slugify
from erp.utils.validation import Rule, validate_payload


@dataclass(frozen=True)
class TaxonomyResource:
    model: Any
    label: str
    rules: Dict[str, Rule]
    dependent_model: Any
    dependent_fk: Any
    dependent_label: str
    # relationship to a soft-deletable parent that must be live for a restore
    parent_attr: Optional[str] = None

    def count_dependents(self, record_id: int) -> int:
        session = get_db()
        stmt = select(func.count(self.dependent_model.id)).where(
            self.dependent_fk == record_id, self.dependent_model.live()
        )
        return session.execute(stmt).scalar_one()


CATEGORY_TYPES = TaxonomyResource(
    model=CategoryType,
    label='Category type',
    rules={
        'name': Rule(str, required=True, max_length=255),
        'slug': Rule(str, required=True, max_length=255, unique=CategoryType.slug),
        'description': Rule(str),
        'variant': Rule(str, required=True, choices=CategoryType.ALL_VARIANTS),
        'status': Rule(str, required=True, choices=ALL_STATUSES),
    },
    dependent_model=Category,
    dependent_fk=Category.category_type_id,
    dependent_label='categories',
)

CATEGORIES = TaxonomyResource(
    model=Category,
    label='Category',
    rules={
        'name': Rule(str, required=True, max_length=255),
        'slug': Rule(str, required=True, max_length=255, unique=Category.slug),
        'description': Rule(str),
        'category_type_id': Rule(int, required=True, exists=CategoryType.id, exists_where=(CategoryType.live(),)),
        'hsn': Rule(str, max_length=255),
        'status': Rule(str, required=True, choices=ALL_STATUSES),
        'sort_order': Rule(int, min_value=0, max_value=2 ** 31 - 1, default=0),
    },
    dependent_model=Equipment,
    dependent_fk=Equipment.category_id,
    dependent_label='equipment',
    parent_attr='category_type',
)


def _with_slug(payload: Optional[Dict[str, Any]]):
    """Copy of the payload with ``slug`` derived from ``name`` when omitted."""
    if not isinstance(payload, dict):
        return payload
    data = dict(payload)
    slug = data.get('slug')
    name = data.get('name')
    if (slug is None or (isinstance(slug, str) and not slug.strip())) and isinstance(name, str) and name.strip():
        data['slug'] = slugify(name)
    return data


def get_or_404(resource: TaxonomyResource, record_id: int, with_trashed: bool = False):
    session = get_db()
    stmt = select(resource.model).where(resource.model.id == record_id)
    if not with_trashed:
        stmt = stmt.where(resource.model.live())
    record = session.execute(stmt).scalar_one_or_none()
    if record is None:
        abort(404, description=f'{resource.label} {record_id} not found')
    return record


def create(resource: TaxonomyResource, payload: Optional[Dict[str, Any]]):
    session = get_db()
    data = validate_payload(session, _with_slug(payload), resource.rules)
    record = resource.model(**data)
    session.add(record)
    session.flush()
    current_app.logger.info('%s %s created (id=%s)', resource.label, record.slug, record.id)
    return record


def update(resource: TaxonomyResource, record_id: int, payload: Optional[Dict[str, Any]]):
    """Replace every field of a live record after revalidating the whole payload."""
    session = get_db()
    record = get_or_404(resource, record_id)
    data = validate_payload(session, _with_slug(payload), resource.rules, ignore_id=record.id)
    for key, value in data.items():
        setattr(record, key, value)
    session.flush()
    current_app.logger.info('%s %s updated', resource.label, record.id)
    return record


def change_status(resource: TaxonomyResource, record_id: int, payload: Optional[Dict[str, Any]]):
    session = get_db()
    record = get_or_404(resource, record_id)
    data = validate_payload(session, payload, {'status': Rule(str, required=True, choices=ALL_STATUSES)})
    STATUS_TOGGLE_FSM.assert_can_transition(record.status, data['status'])
    previous = record.status
    record.status = data['status']
    session.flush()
    current_app.logger.info('%s %s status %s -> %s', resource.label, record.id, previous, record.status)
    return record


def delete(resource: TaxonomyResource, record_id: int) -> Tuple[bool, str]:
    """Soft delete unless live dependents still reference the record.

    Returns (deleted, message); a refusal leaves the record untouched.
    """
    session = get_db()
    record = get_or_404(resource, record_id)
    dependents = resource.count_dependents(record.id)
    if dependents:
        current_app.logger.warning(
            '%s %s not deleted: %d %s attached', resource.label, record.id, dependents, resource.dependent_label
        )
        return False, f'Cannot delete {resource.label.lower()} "{record.name}": it still has {dependents} {resource.dependent_label}.'
    record.soft_delete()
    session.flush()
    current_app.logger.info('%s %s soft deleted', resource.label, record.id)
    return True, f'{resource.label} deleted successfully.'


def restore(resource: TaxonomyResource, record_id: int) -> Tuple[Any, Optional[str]]:
    """Clear ``deleted_at``; a live record is returned unchanged.

    Returns (record, refusal message). A record whose parent is still
    soft-deleted stays in the trash.
    """
    session = get_db()
    record = get_or_404(resource, record_id, with_trashed=True)
    if record.is_deleted:
        parent = getattr(record, resource.parent_attr) if resource.parent_attr else None
        if parent is not None and parent.is_deleted:
            current_app.logger.warning('%s %s not restored: parent %s is deleted', resource.label, record.id, parent.id)
            return record, f'Cannot restore {resource.label.lower()} "{record.name}": restore "{parent.name}" first.'
        record.restore()
        session.flush()
        current_app.logger.info('%s %s restored', resource.label, record.id)
    return record, None
