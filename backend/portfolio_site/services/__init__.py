# Services package init
"""
Portfolio Site Backend — Services Layer
========================================

What:  Business logic between the routes (HTTP) and Supabase (remote store).

Service Inventory:
    - results.py:              Ok / Err tagged outcomes shared by services
    - supabase_gateway.py:     PostgREST calls against the subscriber schema
    - subscription_service.py: subscribe / confirm / unsubscribe / count
    - auth_service.py:         Supabase Auth wrapper returning AuthResult
    - consent.py:              consent cookie parsing and level resolution
    - seo.py:                  meta tags, robots.txt, sitemap.xml
    - analytics_store.py:      bounded in-memory analytics buffer

Services never raise for expected outcomes; routes decide how an outcome
maps to HTTP.
"""
