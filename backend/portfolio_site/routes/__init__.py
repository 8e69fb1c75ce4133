# Routes package init
"""
Portfolio Site Backend — API Routes Package
============================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - health.py:     GET|HEAD /api/health
    - subscribe.py:  POST /api/subscribe, /check; GET /count, /confirm, /unsubscribe
    - auth.py:       POST /api/auth/signin, /signout; GET /callback, /session, /user
    - analytics.py:  POST /api/analytics/events, /performance, /errors;
                     GET|POST /api/analytics/consent
    - seo.py:        GET /robots.txt, /sitemap.xml, /api/seo/meta

Routes stay thin: read the request, call one service, choose the status
code. Business rules live in services/.
"""
