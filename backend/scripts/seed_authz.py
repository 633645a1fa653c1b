#!/usr/bin/env python
"""Idempotent seed script for permissions, roles, the first admin and category types.

Usage:
    python backend/scripts/seed_authz.py                        # seed normally
    python backend/scripts/seed_authz.py --show-roles           # print role -> permission counts
    python backend/scripts/seed_authz.py --dry-run              # run logic then rollback (no DB changes)
    python backend/scripts/seed_authz.py --with-category-types  # also create the default category types
    python backend/scripts/seed_authz.py --export-json roles.json
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib

# Allow running from repo root or from backend/
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from erp import create_app, get_db  # noqa: E402
from erp.models.authz import Base  # noqa: E402
import erp.models.audit  # noqa: E402,F401
import erp.models.equipment  # noqa: E402,F401
from erp.services.seeding import (  # noqa: E402
    ensure_permissions,
    ensure_roles,
    ensure_initial_admin,
    ensure_category_types,
    role_permission_map,
)


def print_role_summary(mapping):
    if not mapping:
        print("[INFO] No roles present.")
        return
    name_w = max(len(n) for n in mapping)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, perms in mapping.items():
        print(f"{name.ljust(name_w)} | {str(len(perms)).rjust(5)} | {', '.join(perms[:8])}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed permissions, roles and reference data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_authz.py\n  dry run: seed_authz.py --dry-run\n  show roles: seed_authz.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--with-category-types', action='store_true', help='Also create the default equipment category types')
    p.add_argument('--no-admin', action='store_true', help='Do not create the initial admin user')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role->permissions JSON (to FILE or stdout if omitted)')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        # bootstrap schema when migrations were not run; prefer `alembic upgrade head`
        Base.metadata.create_all(session.get_bind(), checkfirst=True)
        try:
            created_p = ensure_permissions(session)
            created_r = ensure_roles(session)
            created_u = 0 if args.no_admin else ensure_initial_admin(session)
            created_t = ensure_category_types(session) if args.with_category_types else 0
            mapping = role_permission_map(session)
            counts = f"permissions: {created_p}, roles: {created_r}, admin users: {created_u}, category types: {created_t}"
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) would create {counts}")
            else:
                session.commit()
                print(f"[DONE] created {counts}")
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary(mapping)
            if args.export_json is not None:
                canonical = json.dumps(mapping, sort_keys=True, separators=(',', ':'))
                payload = {
                    'roles': mapping,
                    'meta': {
                        'roles_checksum_sha256': hashlib.sha256(canonical.encode('utf-8')).hexdigest(),
                        'distinct_permissions': len({p for perms in mapping.values() for p in perms}),
                        'dry_run': args.dry_run,
                    },
                }
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
