"""Database access layer for RAI."""
