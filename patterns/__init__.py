"""Reusable data-access patterns shared by the catalog verticals.

- repository: generic async CRUD over a SQLAlchemy model
"""
