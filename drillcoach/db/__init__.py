"""
Database layer: SQLAlchemy engine/session helpers and table models.
"""
