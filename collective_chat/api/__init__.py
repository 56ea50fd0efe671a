"""
HTTP API - FastAPI application, routes and wire models
"""
