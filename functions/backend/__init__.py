"""
Backend package for the Easy Chat web surfaces.

This package provides a FastAPI application serving the login, chat and
failure pages, backed by Firebase Auth and Firestore or by in-memory
stand-ins for local runs and tests.
"""
