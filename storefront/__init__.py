"""
Catalog and auth API backing the storefront mobile app.

The package exposes a FastAPI application with an injected persistence
layer (in-memory or SQLAlchemy), a catalog query engine and a credential
service issuing signed bearer tokens.
"""
