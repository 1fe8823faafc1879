"""Database engine, declarative base, enums and models."""
