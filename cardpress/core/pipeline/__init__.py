"""
Pipeline Module
===============

Turns card records and templates into resolved card HTML.
"""
