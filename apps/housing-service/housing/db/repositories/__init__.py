"""
Per-domain repository modules for database access.

Plain functions taking a `Session`; simple CRUD commits on its own, while the
multi-entity workflows in `housing.services` stage changes and commit once.
"""
