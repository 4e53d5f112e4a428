"""
Utility functions shared by the conversion services
"""

from .app_logger import configure_logging, get_converter_logger, get_logger

__all__ = ["configure_logging", "get_converter_logger", "get_logger"]
