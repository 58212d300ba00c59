"""Body-map sensation engine: pixel mapping, area tallies, binning, export.

Modules here import the survey models, and the models import ``areas`` and
``errors``; keep this package initializer free of imports.
"""
