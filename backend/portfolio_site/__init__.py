"""
Portfolio Site Backend — Application Package Initializer
=========================================================

What: Marks the `portfolio_site` directory as a Python package.
Who:  Used by uvicorn (`portfolio_site.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Middleware (headers, consent)     │  ← cross-cutting, every request
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← subscription, auth, consent, SEO
    ├─────────────────────────────────────┤
    │   Supabase Gateway (Remote Store)   │  ← the only code that sees SDK shapes
    └─────────────────────────────────────┘

    Persistence and identity live in Supabase. This package only issues
    requests against it; the subscriber schema itself is versioned under
    `alembic/`.
"""

__version__ = "1.0.0"
