"""
Portfolio Site Backend — Middleware Package
============================================

What:  Cross-cutting request handling shared by every route.

Middleware chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [Security Headers]
            → [Analytics Gate] → [Consent] → Route Handler

    1. Request ID first so every later log line carries it
    2. Logging sees the final status, including security/consent rejections
    3. GZip compresses bodies over 500 bytes
    4. Security headers decorate every response, rejections included
    5. Analytics gate answers rate-limited, 405 and preflight requests
       before consent is consulted
    6. Consent attaches request.state.consent and blocks unconsented
       analytics calls
"""
