"""
Quill API application.

FastAPI service exposing article and translation endpoints.
"""
