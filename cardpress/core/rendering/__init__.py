"""
Rendering Module
================

Card HTML rendering and rasterization.

Components:
- template_renderer: placeholder substitution for card templates
- assets: rewriting of relative asset links
- document: full-page wrapper around card HTML
- rasterizer: Playwright screenshots of card documents
"""
