"""
Data Models
===========

Pydantic models for project configuration, card records, localization bundles,
resolved cards, page layout and export results.
"""
