"""
API Routes
==========

Routers mounted under ``/api/v1``.
"""
