from datetime import datetime
from typing import Dict, Optional
from flask import Blueprint, request
from sqlalchemy import select, func
from erp import get_db
from erp.models.equipment import CategoryType, Category, Equipment, ALL_STATUSES
from erp.services import taxonomy
from erp.services.taxonomy import CATEGORY_TYPES, CATEGORIES
from erp.utils.filters import apply_filters, like_pattern
from erp.utils.listing import apply_pagination, respond_list
from erp.utils.sorting import apply_multi_sort
from erp.utils.envelopes import success, refusal
from erp.decorators.audit import audit_log
from erp.decorators.auth import require_permissions

equipment_bp = Blueprint('equipment', __name__)

TRASHED_CHOICES = ('with', 'only')


def _iso(dt: Optional[datetime]):
    return dt.isoformat() if dt else None


def _live_counts(fk_col, model, ids) -> Dict[int, int]:
    if not ids:
        return {}
    stmt = select(fk_col, func.count(model.id)).where(fk_col.in_(ids), model.live()).group_by(fk_col)
    return dict(get_db().execute(stmt).all())


def _trashed_filter(model):
    def op(q, v):
        return q.filter(model.trashed()) if v == 'only' else q
    return op


def _scoped(q, model):
    # default listings hide soft-deleted rows unless ?trashed= asks for them
    if request.args.get('trashed') not in TRASHED_CHOICES:
        q = q.filter(model.live())
    return q


def _category_type_json(t: CategoryType, categories_count: Optional[int] = None):
    out = {
        'id': t.id,
        'name': t.name,
        'slug': t.slug,
        'description': t.description,
        'variant': t.variant,
        'status': t.status,
        'created_at': _iso(t.created_at),
        'updated_at': _iso(t.updated_at),
        'deleted_at': _iso(t.deleted_at),
    }
    if categories_count is not None:
        out['categories_count'] = categories_count
    return out


def _category_json(c: Category, equipment_count: Optional[int] = None):
    out = {
        'id': c.id,
        'name': c.name,
        'slug': c.slug,
        'description': c.description,
        'category_type_id': c.category_type_id,
        'category_type': {'id': c.category_type.id, 'name': c.category_type.name} if c.category_type else None,
        'hsn': c.hsn,
        'status': c.status,
        'sort_order': c.sort_order,
        'created_at': _iso(c.created_at),
        'updated_at': _iso(c.updated_at),
        'deleted_at': _iso(c.deleted_at),
    }
    if equipment_count is not None:
        out['equipment_count'] = equipment_count
    return out


def _snapshot(resource, serializer):
    def fetch(args, kwargs):
        record = get_db().execute(
            select(resource.model).where(resource.model.id == kwargs.get('record_id'))
        ).scalar_one_or_none()
        return serializer(record) if record else {}
    return fetch


TYPE_DIFF_KEYS = ['name', 'slug', 'description', 'variant', 'status']
CATEGORY_DIFF_KEYS = ['name', 'slug', 'description', 'category_type_id', 'hsn', 'status', 'sort_order']


# --- Category types ---

@equipment_bp.get('/category-types')
@require_permissions('category_types.read')
def list_category_types():
    session = get_db()
    q = _scoped(session.query(CategoryType), CategoryType)
    q = apply_filters(q, {
        'trashed': {'op': _trashed_filter(CategoryType), 'choices': TRASHED_CHOICES},
        'status': {'op': lambda q, v: q.filter(CategoryType.status == v), 'choices': ALL_STATUSES},
        'variant': {'op': lambda q, v: q.filter(CategoryType.variant == v), 'choices': CategoryType.ALL_VARIANTS},
        'search': {'op': lambda q, v: q.filter(
            CategoryType.name.ilike(like_pattern(v), escape='\\') | CategoryType.slug.ilike(like_pattern(v), escape='\\')
        )},
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {
        'name': CategoryType.name,
        'slug': CategoryType.slug,
        'variant': CategoryType.variant,
        'status': CategoryType.status,
        'created_at': CategoryType.created_at,
        'id': CategoryType.id,
    }, CategoryType.id)
    q, total, limit, offset = apply_pagination(q)
    rows = q.all()
    counts = _live_counts(Category.category_type_id, Category, [t.id for t in rows])
    data = [_category_type_json(t, counts.get(t.id, 0)) for t in rows]
    return respond_list(data, rows, total, limit, offset)


@equipment_bp.get('/category-types/<int:record_id>')
@require_permissions('category_types.read')
def get_category_type(record_id: int):
    t = taxonomy.get_or_404(CATEGORY_TYPES, record_id)
    return {'data': _category_type_json(t, CATEGORY_TYPES.count_dependents(t.id))}


@equipment_bp.post('/category-types')
@require_permissions('category_types.create')
@audit_log('CATEGORY_TYPE.CREATE', entity='CategoryType', entity_id_key='id', meta_keys=['name', 'slug', 'variant'])
def create_category_type():
    t = taxonomy.create(CATEGORY_TYPES, request.get_json(silent=True))
    return success('Category type created successfully.', _category_type_json(t)), 201


@equipment_bp.put('/category-types/<int:record_id>')
@require_permissions('category_types.update')
@audit_log(
    'CATEGORY_TYPE.UPDATE',
    entity='CategoryType',
    entity_id_key='id',
    diff_keys=TYPE_DIFF_KEYS,
    pre_fetch=_snapshot(CATEGORY_TYPES, _category_type_json),
)
def update_category_type(record_id: int):
    t = taxonomy.update(CATEGORY_TYPES, record_id, request.get_json(silent=True))
    return success('Category type updated successfully.', _category_type_json(t))


@equipment_bp.put('/category-types/<int:record_id>/status')
@require_permissions('category_types.update')
@audit_log(
    'CATEGORY_TYPE.STATUS',
    entity='CategoryType',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=_snapshot(CATEGORY_TYPES, _category_type_json),
)
def update_category_type_status(record_id: int):
    t = taxonomy.change_status(CATEGORY_TYPES, record_id, request.get_json(silent=True))
    return success('Category type status updated successfully.', _category_type_json(t))


@equipment_bp.delete('/category-types/<int:record_id>')
@require_permissions('category_types.delete')
@audit_log('CATEGORY_TYPE.DELETE', entity='CategoryType', entity_id_arg='record_id')
def delete_category_type(record_id: int):
    deleted, message = taxonomy.delete(CATEGORY_TYPES, record_id)
    if not deleted:
        return refusal(message)
    return success(message, {'id': record_id})


@equipment_bp.post('/category-types/<int:record_id>/restore')
@require_permissions('category_types.update')
@audit_log('CATEGORY_TYPE.RESTORE', entity='CategoryType', entity_id_key='id')
def restore_category_type(record_id: int):
    t, refused = taxonomy.restore(CATEGORY_TYPES, record_id)
    if refused:
        return refusal(refused)
    return success('Category type restored successfully.', _category_type_json(t))


# --- Categories ---

@equipment_bp.get('/categories')
@require_permissions('categories.read')
def list_categories():
    session = get_db()
    q = _scoped(session.query(Category), Category)
    q = apply_filters(q, {
        'trashed': {'op': _trashed_filter(Category), 'choices': TRASHED_CHOICES},
        'status': {'op': lambda q, v: q.filter(Category.status == v), 'choices': ALL_STATUSES},
        'category_type_id': {'op': lambda q, v: q.filter(Category.category_type_id == v), 'coerce': int},
        'search': {'op': lambda q, v: q.filter(
            Category.name.ilike(like_pattern(v), escape='\\')
            | Category.slug.ilike(like_pattern(v), escape='\\')
            | Category.hsn.ilike(like_pattern(v), escape='\\')
        )},
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {
        'name': Category.name,
        'slug': Category.slug,
        'status': Category.status,
        'sort_order': Category.sort_order,
        'created_at': Category.created_at,
        'id': Category.id,
    }, Category.id)
    q, total, limit, offset = apply_pagination(q)
    rows = q.all()
    counts = _live_counts(Equipment.category_id, Equipment, [c.id for c in rows])
    data = [_category_json(c, counts.get(c.id, 0)) for c in rows]
    return respond_list(data, rows, total, limit, offset)


@equipment_bp.get('/categories/<int:record_id>')
@require_permissions('categories.read')
def get_category(record_id: int):
    c = taxonomy.get_or_404(CATEGORIES, record_id)
    return {'data': _category_json(c, CATEGORIES.count_dependents(c.id))}


@equipment_bp.post('/categories')
@require_permissions('categories.create')
@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='id', meta_keys=['name', 'slug', 'category_type_id'])
def create_category():
    c = taxonomy.create(CATEGORIES, request.get_json(silent=True))
    return success('Category created successfully.', _category_json(c)), 201


@equipment_bp.put('/categories/<int:record_id>')
@require_permissions('categories.update')
@audit_log(
    'CATEGORY.UPDATE',
    entity='Category',
    entity_id_key='id',
    diff_keys=CATEGORY_DIFF_KEYS,
    pre_fetch=_snapshot(CATEGORIES, _category_json),
)
def update_category(record_id: int):
    c = taxonomy.update(CATEGORIES, record_id, request.get_json(silent=True))
    return success('Category updated successfully.', _category_json(c))


@equipment_bp.put('/categories/<int:record_id>/status')
@require_permissions('categories.update')
@audit_log(
    'CATEGORY.STATUS',
    entity='Category',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=_snapshot(CATEGORIES, _category_json),
)
def update_category_status(record_id: int):
    c = taxonomy.change_status(CATEGORIES, record_id, request.get_json(silent=True))
    return success('Category status updated successfully.', _category_json(c))


@equipment_bp.delete('/categories/<int:record_id>')
@require_permissions('categories.delete')
@audit_log('CATEGORY.DELETE', entity='Category', entity_id_arg='record_id')
def delete_category(record_id: int):
    deleted, message = taxonomy.delete(CATEGORIES, record_id)
    if not deleted:
        return refusal(message)
    return success(message, {'id': record_id})


@equipment_bp.post('/categories/<int:record_id>/restore')
@require_permissions('categories.update')
@audit_log('CATEGORY.RESTORE', entity='Category', entity_id_key='id')
def restore_category(record_id: int):
    c, refused = taxonomy.restore(CATEGORIES, record_id)
    if refused:
        return refusal(refused)
    return success('Category restored successfully.', _category_json(c))
