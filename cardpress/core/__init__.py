"""
Core Business Logic
==================

Core business logic modules for card rendering and print export.

Modules:
- layout: unit conversion, card dimensions and page pagination
- localization: translated-string lookup and bundle loading
- rendering: template rendering, asset links, card documents and rasterization
- pipeline: per-card template selection with memoized results
- export: PDF composition, export status and the export driver
- storage: file system access
- project: project configuration and card table loading
"""
