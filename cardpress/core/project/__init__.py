"""
Project Module
==============

Loading of card deck project folders and the project lifecycle (open, reload,
locale change).
"""
