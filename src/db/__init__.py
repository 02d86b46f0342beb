"""
Database Module
-------------
Handles database connections, ORM models, and the place record store.
Uses SQLAlchemy and defines the database schema for place data.
"""
