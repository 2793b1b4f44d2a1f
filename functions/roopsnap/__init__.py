"""
Backend package for the RoopSnap Photography site.

This package provides a FastAPI application serving the studio home page and
the contact, gallery and profile API, with pluggable document, table, object
storage and local-file backends selected from configuration.
"""
