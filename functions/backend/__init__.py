"""
Backend package for the file storage API.

This package provides a FastAPI application that keeps uploaded images and
generated QR codes as base64 documents in Firestore, so the app can run
without a Cloud Storage bucket.
"""
