"""Shared persistence layer: ORM models and database session management."""
