"""
API module - FastAPI application
"""
