"""Shared constants for the request layer and domain facades.

Storage keys and resource-kind names are defined here so that the
credential store, the client and the facades agree on them.
"""

# Persistent key-value store keys
STORAGE_AUTH_TOKEN = "auth_token"
STORAGE_REFRESH_TOKEN = "refresh_token"

# Credential sources
SOURCE_PERSISTED = "persisted"
SOURCE_MEMORY = "memory"

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "

# Auth endpoints (called with credential injection suppressed)
AUTH_LOGIN_PATH = "/auth/login"
AUTH_SIGNUP_PATH = "/auth/signup"
AUTH_LOGOUT_PATH = "/auth/logout"
AUTH_REFRESH_PATH = "/auth/refresh"
USER_PROFILE_PATH = "/users/me"

# TTL tiers
TTL_SHORT = "short"
TTL_LONG = "long"

# Domain ids
DOMAIN_ASSETS = "assets"
DOMAIN_CRM = "crm"
DOMAIN_FINANCE = "finance"
DOMAIN_HR = "hr"
DOMAIN_VENDOR = "vendor"
DOMAIN_PROJECTS = "projects"
