"""
API routers.

Route handlers grouped by resource.
"""

from . import articles, translations

__all__ = ["articles", "translations"]
