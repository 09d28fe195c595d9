"""
Logging Configuration Module
============================

Responsibility:
- Root logger setup from the 'logging' configuration section.
- Coloured console output (colorama) and rotating UTF-8 log files.
"""

from .logging_config import LoggingConfigurator, ColoredFormatter

__all__ = ['LoggingConfigurator', 'ColoredFormatter']
