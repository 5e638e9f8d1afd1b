"""
MemeStudio Backend - Middleware Package
========================================

What:  Cross-cutting request handling.

Execution order (outermost first):
    Request ID → Rate Limit (/api only) → Logging → GZip → CORS → routes

    The request id is assigned first so rate-limited responses and every
    log line carry it.
"""
