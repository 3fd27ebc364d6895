"""
Backend package for the AAC board API.

This package provides a FastAPI application with Firestore and Cloud Storage
abstractions, Firebase bearer-token auth, and the Vertex AI icon pipeline.
"""

__version__ = "1.0.0"
