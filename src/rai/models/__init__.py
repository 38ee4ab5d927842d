"""Database and domain models for RAI."""
