"""
Localization Module
===================

Translated-string lookup for card templates.

Components:
- resolver: dotted-key lookup with card-scoped key rewriting
- loader: locale discovery and YAML bundle loading
"""
