"""
Configuration and environment setup.

Settings are read from environment variables and an optional ``.env`` file.
"""

from .settings import AssistantSettings, load_settings

__all__ = ['AssistantSettings', 'load_settings']
