"""Database layer: declarative base, session factory, models, enums."""
