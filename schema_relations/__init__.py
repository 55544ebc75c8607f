"""Relationship inference for relational database schemas."""

__version__ = "0.1.0"
