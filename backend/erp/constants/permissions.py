"""Permission naming and the default authorization seed.

Permission names are ``<module>.<action>`` with action one of the CRUD verbs.
Modules are never persisted on their own; they exist only as name prefixes.
"""
from __future__ import annotations
from typing import Dict, List

from erp.models.authz import CRUD_ACTIONS

# Role that implicitly holds every permission
SUPERUSER_ROLE = 'admin'

DEFAULT_MODULES = [
    'users', 'roles', 'permissions', 'departments',
    'category_types', 'categories', 'equipment',
    'employees', 'items', 'vendors',
    'clients', 'enquiries', 'quotations', 'sales_orders',
    'sales_bills', 'dispatches', 'purchase_intents',
    'purchase_orders', 'goods_receipt_notes',
]


def build_all_permission_names(modules=DEFAULT_MODULES) -> List[str]:
    return [f'{module}.{action}' for module in modules for action in CRUD_ACTIONS]


ALL_PERMISSION_NAMES = build_all_permission_names()

ROLE_PRESETS: Dict[str, List[str]] = {
    SUPERUSER_ROLE: ['*'],
    'hr': ['employees.*', 'departments.*', 'users.read'],
    'sales': ['clients.*', 'enquiries.*', 'quotations.*', 'sales_orders.*', 'sales_bills.*', 'dispatches.*', 'items.read'],
    'purchase': ['vendors.*', 'purchase_intents.*', 'purchase_orders.*', 'goods_receipt_notes.*', 'items.read'],
    'inventory': ['items.*', 'equipment.*', 'categories.*', 'category_types.*', 'goods_receipt_notes.read'],
    'finance': ['sales_bills.read', 'purchase_orders.read', 'vendors.read', 'clients.read'],
}


def expand_preset(patterns: List[str], available: List[str]) -> List[str]:
    """Resolve '*' and 'module.*' patterns against the available names."""
    out = set()
    for pattern in patterns:
        if pattern == '*':
            out.update(available)
        elif pattern.endswith('.*'):
            prefix = pattern[:-1]
            out.update(n for n in available if n.startswith(prefix))
        elif pattern in available:
            out.add(pattern)
    return sorted(out)
