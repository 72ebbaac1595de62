"""Storefront FastAPI application.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from storefront/domain.toml:
#   - "test"       → in-memory providers, quiet logging
#   - "production" → PostgreSQL
from storefront.api.application import create_app
from storefront.domain import storefront
from storefront.services import build_services

storefront.init()

with storefront.domain_context():
    services = build_services(storefront)

app = create_app(services)
