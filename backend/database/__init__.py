"""
Database Module

This module provides the declarative base and async engine lifecycle used by
the SQL adapters of the exam engine.
"""

from backend.database.base import Base, ModelBase, metadata

__all__ = ['Base', 'ModelBase', 'metadata']
