"""
Configuration module for Job Manager.
"""

from config.settings import settings, Settings, PROJECT_ROOT, DATA_DIR

__all__ = ["settings", "Settings", "PROJECT_ROOT", "DATA_DIR"]
