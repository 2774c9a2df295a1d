"""
Task modules for background processing.

This package contains all background task implementations.
"""

from . import translation

__all__ = ["translation"]
