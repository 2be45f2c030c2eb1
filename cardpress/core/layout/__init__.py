"""
Layout Module
=============

Unit conversion, per-card dimensions and fixed-size page pagination.

Components:
- dimensions: unit/pixel/point conversion and card dimension resolution
- paginator: row-major card placement across pages
"""
