"""Concrete adapters for databases, files and models."""
