"""
MemeStudio Backend - API Routes Package
========================================

Route Inventory:
    - templates.py: /api/templates   catalog listing, preview, detail,
                                     upload, status, favorites
    - memes.py:     /api/memes       create, my-memes, popular, like, delete
    - health.py:    /health

Handlers stay thin: read the request, resolve the user and services
through dependencies, call one service method, wrap the result.
"""
