"""
System components for ratingmath.

This module provides system-level components (configuration, HTTP server).
The server is imported from ratingmath.components.server directly.
"""

from ratingmath.components.config import Config, ConfigManager
