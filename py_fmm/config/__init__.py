"""
Configuration for the fast marching service.
"""

from .settings import Settings, settings

__all__ = ['Settings', 'settings']
