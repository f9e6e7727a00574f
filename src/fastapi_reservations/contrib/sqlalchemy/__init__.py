"""SQLAlchemy-backed reservation store."""
