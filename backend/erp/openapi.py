"""Minimal deterministic OpenAPI document for the ERP API.

Covers auth, the role/permission configuration endpoints, the equipment
taxonomy (list + HEAD validators, single resource, lifecycle actions) and the
refractory data feeds. Output ordering depends only on the tables below.
"""
from typing import Any, Dict, List, Tuple

from .models.equipment import ALL_STATUSES, CategoryType
from .routes.refractory import SECTIONS

__all__ = ["build_openapi_spec"]

# (schema, collection path, sort fields, permission module)
TAXONOMY_ENTITIES: List[Tuple[str, str, str, str]] = [
    ("CategoryType", "/equipment/category-types", "name,slug,variant,status,created_at,id", "category_types"),
    ("Category", "/equipment/categories", "name,slug,status,sort_order,created_at,id", "categories"),
]

# (path, method, summary, required permission)
CONFIG_OPERATIONS: List[Tuple[str, str, str, str]] = [
    ("/data/config/roles", "get", "List roles with their permissions", "roles.read"),
    ("/data/config/roles/add", "post", "Create role", "roles.create"),
    ("/data/config/roles/assign-permissions", "post", "Replace a role's permissions", "roles.update"),
    ("/data/config/permissions", "get", "List permissions", "permissions.read"),
    ("/data/config/permissions/modules", "get", "List permissions grouped by module", "permissions.read"),
    ("/data/config/permissions/add", "post", "Create a module's CRUD permissions", "permissions.create"),
    ("/data/config/permissions/{permission_id}", "put", "Rename permission", "permissions.update"),
    ("/data/config/permissions/{permission_id}", "delete", "Delete permission", "permissions.delete"),
    ("/data/config/permissions/modules/{module}", "delete", "Delete every permission of a module", "permissions.delete"),
    ("/data/config/users", "get", "List users with their roles", "users.read"),
    ("/data/config/users/assign-roles", "post", "Replace a user's roles", "users.update"),
]


def _caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _json(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"application/json": {"schema": schema}}


def _envelope(data_schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "status": {"type": "string", "enum": ["success", "error"]},
            "message": {"type": "string"},
            "data": data_schema,
        },
        "required": ["status", "message"],
    }


def _path_param(name: str, kind: str = "integer") -> Dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": kind}}


def _schemas() -> Dict[str, Any]:
    timestamps = {
        "created_at": {"type": "string", "format": "date-time"},
        "updated_at": {"type": "string", "format": "date-time"},
        "deleted_at": {"type": "string", "format": "date-time", "nullable": True},
    }
    permission = {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "name": {"type": "string", "example": "categories.read"},
            "module": {"type": "string"},
            "action": {"type": "string", "enum": ["create", "read", "update", "delete"]},
        },
        "required": ["id", "name"],
    }
    return {
        "Permission": permission,
        "Role": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string"},
                "permissions": {"type": "array", "items": _ref("Permission")},
            },
            "required": ["id", "name"],
        },
        "User": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string"},
                "email": {"type": "string"},
                "is_active": {"type": "boolean"},
                "roles": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["id", "email"],
        },
        "CategoryType": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string", "maxLength": 255},
                "slug": {"type": "string", "maxLength": 255},
                "description": {"type": "string", "nullable": True},
                "variant": {"type": "string", "enum": list(CategoryType.ALL_VARIANTS)},
                "status": {"type": "string", "enum": list(ALL_STATUSES)},
                "categories_count": {"type": "integer"},
                **timestamps,
            },
            "required": ["id", "name", "slug", "variant", "status"],
            "x-transitions": list(ALL_STATUSES),
        },
        "Category": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string", "maxLength": 255},
                "slug": {"type": "string", "maxLength": 255},
                "description": {"type": "string", "nullable": True},
                "category_type_id": {"type": "integer"},
                "hsn": {"type": "string", "nullable": True, "maxLength": 255},
                "status": {"type": "string", "enum": list(ALL_STATUSES)},
                "sort_order": {"type": "integer", "minimum": 0, "maximum": 2147483647},
                "equipment_count": {"type": "integer"},
                **timestamps,
            },
            "required": ["id", "name", "slug", "category_type_id", "status"],
            "x-transitions": list(ALL_STATUSES),
        },
        "Pagination": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "limit": {"type": "integer"},
                "offset": {"type": "integer"},
                "returned": {"type": "integer"},
            },
            "required": ["total", "limit", "offset", "returned"],
        },
        "Error": {
            "type": "object",
            "properties": {
                "error": {
                    "type": "object",
                    "properties": {
                        "status": {"type": "integer"},
                        "title": {"type": "string"},
                        "detail": {"type": "string"},
                        "fields": {"type": "object", "additionalProperties": {"type": "array", "items": {"type": "string"}}},
                    },
                    "required": ["status", "title", "detail"],
                }
            },
            "required": ["error"],
        },
    }


def _taxonomy_paths(schema: str, coll: str, module: str) -> Dict[str, Any]:
    single = f"{coll}/{{record_id}}"
    id_param = [_path_param("record_id")]
    list_params = [
        {"$ref": "#/components/parameters/LimitParam"},
        {"$ref": "#/components/parameters/OffsetParam"},
        {"$ref": f"#/components/parameters/Sort{schema}Param"},
        {"$ref": "#/components/parameters/TrashedParam"},
        {"name": "status", "in": "query", "schema": {"type": "string", "enum": list(ALL_STATUSES)}},
        {"name": "search", "in": "query", "schema": {"type": "string"}},
    ]
    if schema == "CategoryType":
        list_params.append({"name": "variant", "in": "query", "schema": {"type": "string", "enum": list(CategoryType.ALL_VARIANTS)}})
    else:
        list_params.append({"name": "category_type_id", "in": "query", "schema": {"type": "integer"}})
    ok_record = {"description": "OK", "content": _json(_envelope(_ref(schema)))}
    bad = {"$ref": "#/components/responses/BadRequest"}
    missing = {"$ref": "#/components/responses/NotFound"}
    return {
        coll: {
            "get": {
                "summary": f"List {schema}",
                "parameters": list_params,
                "responses": {
                    "200": {
                        "description": "OK",
                        "headers": _caching_headers(),
                        "content": _json({
                            "type": "object",
                            "properties": {
                                "data": {"type": "array", "items": _ref(schema)},
                                "pagination": _ref("Pagination"),
                            },
                        }),
                    },
                    "304": {"description": "Not Modified"},
                    "400": bad,
                },
                "x-required-permissions": [f"{module}.read"],
            },
            "head": {
                "summary": f"{schema} list validators",
                "responses": {
                    "200": {"description": "Headers only", "headers": _caching_headers()},
                    "304": {"description": "Not Modified"},
                },
                "x-required-permissions": [f"{module}.read"],
            },
            "post": {
                "summary": f"Create {schema}",
                "requestBody": {"content": _json(_ref(schema))},
                "responses": {"201": ok_record, "400": bad},
                "x-required-permissions": [f"{module}.create"],
            },
        },
        single: {
            "get": {
                "summary": f"Get {schema}",
                "parameters": id_param,
                "responses": {"200": {"description": "OK", "content": _json({"type": "object", "properties": {"data": _ref(schema)}})}, "404": missing},
                "x-required-permissions": [f"{module}.read"],
            },
            "put": {
                "summary": f"Update {schema}",
                "parameters": id_param,
                "requestBody": {"content": _json(_ref(schema))},
                "responses": {"200": ok_record, "400": bad, "404": missing},
                "x-required-permissions": [f"{module}.update"],
            },
            "delete": {
                "summary": f"Soft delete {schema} (refused while dependents exist)",
                "parameters": id_param,
                "responses": {"200": {"description": "Deleted or refused", "content": _json(_envelope({"type": "object"}))}, "404": missing},
                "x-required-permissions": [f"{module}.delete"],
            },
        },
        f"{single}/status": {
            "put": {
                "summary": f"Toggle {schema} status",
                "parameters": id_param,
                "requestBody": {"content": _json({"type": "object", "properties": {"status": {"type": "string", "enum": list(ALL_STATUSES)}}})},
                "responses": {"200": ok_record, "400": bad, "404": missing},
                "x-required-permissions": [f"{module}.update"],
            },
        },
        f"{single}/restore": {
            "post": {
                "summary": f"Restore soft-deleted {schema}",
                "parameters": id_param,
                "responses": {"200": ok_record, "404": missing},
                "x-required-permissions": [f"{module}.update"],
            },
        },
    }


def build_openapi_spec() -> Dict[str, Any]:
    components: Dict[str, Any] = {
        "schemas": _schemas(),
        "responses": {
            "NotFound": {"description": "Not Found", "content": _json(_ref("Error"))},
            "BadRequest": {"description": "Bad Request", "content": _json(_ref("Error"))},
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
            "TrashedParam": {"name": "trashed", "in": "query", "schema": {"type": "string", "enum": ["with", "only"]}},
        },
    }
    for schema, _coll, fields, _module in TAXONOMY_ENTITIES:
        components["parameters"][f"Sort{schema}Param"] = {
            "name": "sort",
            "in": "query",
            "schema": {"type": "string"},
            "description": f"Comma separated, '-' prefix for descending. Fields: {fields}",
        }

    paths: Dict[str, Any] = {
        "/auth/login": {"post": {"summary": "Login", "security": [], "responses": {"200": {"description": "JWT issued"}, "401": {"description": "Invalid credentials"}}}},
        "/auth/me": {"get": {"summary": "Current user", "responses": {"200": {"description": "OK"}}}},
    }
    for path, method, summary, perm in CONFIG_OPERATIONS:
        op: Dict[str, Any] = {
            "summary": summary,
            "responses": {"200": {"description": "OK"}, "400": {"$ref": "#/components/responses/BadRequest"}},
            "x-required-permissions": [perm],
        }
        params = [_path_param(seg[1:-1], "string" if seg == "{module}" else "integer") for seg in path.split("/") if seg.startswith("{")]
        if params:
            op["parameters"] = params
        paths.setdefault(path, {})[method] = op
    for schema, coll, _fields, module in TAXONOMY_ENTITIES:
        paths.update(_taxonomy_paths(schema, coll, module))
    for section in SECTIONS:
        paths[f"/refractory/data/{section}"] = {
            "get": {
                "summary": f"Refractory {section} data",
                "responses": {"200": {"description": "Always an empty collection", "content": _json({"type": "object", "properties": {"data": {"type": "array", "items": {}}}})}},
            }
        }

    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        tag = path.split("/")[1].capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("-", "_").replace("{", "").replace("}", "")
            od["operationId"] = f"{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "Equipment ERP API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
