"""
Central registry of capabilities per role.

Routes declare the capability they need with ``permission_required``; the
role carried by the access token is checked against this table.
"""
ROLE_SCOPES = {
    "admin": {"*"},
    "manager": {
        "items:write",
        "items:export",
        "stock:adjust",
        "suppliers:write",
        "sales:record",
        "sales:read",
        "sales:own",
        "reports:read",
        "analytics:read",
        "logs:read",
        "recipients:read",
        "orders:manage",
        "catalog:manage",
    },
    "staff": {"sales:record", "sales:own"},
    "ecommerce": {"catalog:manage"},
}

# Granted only through the admin wildcard
ADMIN_ONLY_SCOPES = {
    "items:delete",
    "items:import",
    "suppliers:delete",
    "users:manage",
    "logs:admin",
    "recipients:write",
    "alerts:trigger",
}

KNOWN_SCOPES = ADMIN_ONLY_SCOPES.union(*(s for r, s in ROLE_SCOPES.items() if r != "admin"))


def role_has_scope(role: str, action: str) -> bool:
    scopes = ROLE_SCOPES.get(role, set())
    return "*" in scopes or action in scopes
