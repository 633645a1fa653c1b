"""Refractory product management routes.

The section pages and their data feeds answer with empty collections; every
other action is routed but not implemented yet and answers 501.
"""
from flask import Blueprint, abort, current_app, request
from flask_jwt_extended import jwt_required

refractory_bp = Blueprint('refractory', __name__)

SECTIONS = ('specifications', 'quality-control', 'certifications', 'documents', 'batches', 'performance')

# (method, rule, endpoint) for section actions that have no implementation
UNIMPLEMENTED_ACTIONS = [
    ('POST', '/specifications', 'specifications_store'),
    ('PUT', '/specifications/<int:item_id>', 'specifications_update'),
    ('DELETE', '/specifications/<int:item_id>', 'specifications_destroy'),
    ('POST', '/quality-control/inspections', 'inspections_store'),
    ('PUT', '/quality-control/inspections/<int:item_id>', 'inspections_update'),
    ('POST', '/quality-control/tests', 'tests_store'),
    ('PUT', '/quality-control/tests/<int:item_id>', 'tests_update'),
    ('GET', '/quality-control/reports', 'quality_control_report'),
    ('POST', '/certifications', 'certifications_store'),
    ('PUT', '/certifications/<int:item_id>', 'certifications_update'),
    ('DELETE', '/certifications/<int:item_id>', 'certifications_destroy'),
    ('POST', '/certifications/<int:item_id>/renew', 'certifications_renew'),
    ('GET', '/certifications/expiring', 'certifications_expiring'),
    ('POST', '/documents', 'documents_store'),
    ('PUT', '/documents/<int:item_id>', 'documents_update'),
    ('DELETE', '/documents/<int:item_id>', 'documents_destroy'),
    ('GET', '/documents/<int:item_id>/download', 'documents_download'),
    ('POST', '/documents/<int:item_id>/share', 'documents_share'),
    ('POST', '/batches', 'batches_store'),
    ('PUT', '/batches/<int:item_id>', 'batches_update'),
    ('GET', '/batches/<int:item_id>/history', 'batches_history'),
    ('POST', '/batches/<int:item_id>/quality-check', 'batches_quality_check'),
    ('GET', '/batches/trace/<code>', 'batches_trace'),
    ('POST', '/performance/metrics', 'performance_metrics_store'),
    ('GET', '/performance/reports', 'performance_report'),
    ('GET', '/performance/analytics', 'performance_analytics'),
]


def _check_section(section: str):
    if section not in SECTIONS:
        abort(404, description=f'Unknown refractory section {section}')


@refractory_bp.get('/<section>')
@jwt_required()
def section_index(section: str):
    _check_section(section)
    return {'data': []}


@refractory_bp.get('/data/<section>')
@jwt_required()
def section_data(section: str):
    _check_section(section)
    return {'data': []}


@jwt_required()
def _not_implemented(**kwargs):
    current_app.logger.info('Refractory action %s %s is not implemented', request.method, request.path)
    abort(501, description='This refractory action is not implemented yet')


for _method, _rule, _endpoint in UNIMPLEMENTED_ACTIONS:
    refractory_bp.add_url_rule(_rule, endpoint=_endpoint, view_func=_not_implemented, methods=[_method])
