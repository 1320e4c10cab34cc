"""
Face catalog.

Stores facial identity embeddings with their paired images, answers
similarity lookups and clustering, and pushes change notifications to
subscribers.
"""

__version__ = "0.1.0"
