"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. They never
commit on their own unless the method name says so; services own the
transaction boundary.
"""
