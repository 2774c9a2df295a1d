"""
Quill background worker.

arq worker running the translation pipeline and its housekeeping.
"""
