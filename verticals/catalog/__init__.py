"""Catalog vertical — books, authors, genres, reviews, reading lists and reports.

Everything one domain needs, laid out the same way:
- SQLAlchemy models and Pydantic schemas (models/)
- Pure-function request rules (rules.py)
- Async repositories for CRUD, listing and comparison (repository.py)
- Reporting queries (reports.py) and the CSV renderer (renderer.py)
- FastAPI routers, one per resource group (routers/)
"""
