"""
FastAPI RESTful API for managing book records.

This module provides a small REST API for:
- Listing, reading, creating, updating and deleting books
- Storage in Firestore or the Firebase Realtime Database
"""
