"""Configuration module for the usersync application."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
