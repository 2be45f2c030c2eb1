"""
Export Module
=============

Composes rasterized cards into a paginated PDF document.

Components:
- document_writer: ReportLab page composition
- status: export progress tracking
- service: the export driver
"""
