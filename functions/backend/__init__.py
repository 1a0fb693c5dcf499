"""
Backend package for the campus community HTTP API.

This package serves the community operations as a FastAPI application for
clients that do not talk to Firestore directly, alongside the Cloud Functions
in main.py.
"""
