"""
API Module
==========

FastAPI application exposing card preview and document export.
"""
