"""
Point sources.

A point source answers "which points fall inside this bbox", ordered by id.
The in-memory source backs tests and demos; the DuckDB source backs real data.
"""
