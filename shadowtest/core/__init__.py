"""
Core module for application configuration and test assembly.
"""
from .config import settings

__all__ = ["settings"]
