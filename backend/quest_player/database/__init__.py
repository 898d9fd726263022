"""Database package: declarative base, async engine and session factory."""

from .base import Base, create_all_tables


__all__ = ["Base", "create_all_tables"]
