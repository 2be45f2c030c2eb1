"""
CardPress
=========

Render a tabular card deck through HTML templates into card images and a
print-ready PDF.

This package provides:
- Template rendering with localization and asset fallbacks
- A memoized card resolution pipeline for live previews
- Browser-based rasterization with Playwright
- Fixed-size card pagination and PDF composition with ReportLab
- A FastAPI surface for preview and export
"""

__version__ = "1.0.0"
__author__ = "CardPress Team"
