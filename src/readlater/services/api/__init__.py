"""
Save API Service

HTTP entry point for single saves and CSV imports.
"""

from .main import app

__all__ = ['app']
