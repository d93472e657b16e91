"""
Shared helpers: logging and application settings.
"""
