"""
Configuration package for the storage engine.
"""

from .settings import AppConfig

__all__ = ["AppConfig"]
