"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON search configurations.
- Enforcement of schema constraints and logical rules (known models, scorers, bounds).
- Resource usage guardrails (grid size, worker oversubscription, memory).
- Canonical configuration hashing for log correlation.
"""

from .config_manager import ConfigurationManager
from .schema import SEARCH_CONFIG_SCHEMA

__all__ = ['ConfigurationManager', 'SEARCH_CONFIG_SCHEMA']
