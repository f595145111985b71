# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 13 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the lifecycle manager.
"""

from core.config.defaults import (
    LeaseDefaults,
    ReaperDefaults,
    DatabaseDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "LeaseDefaults",
    "ReaperDefaults",
    "DatabaseDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
