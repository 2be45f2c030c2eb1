"""
Storage Module
==============

File system access used by project loading, template loading and export.
"""
