"""Configuration package for the payment gateway."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
