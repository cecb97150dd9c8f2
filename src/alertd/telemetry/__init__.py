#
# src/alertd/telemetry/__init__.py
#
"""
Logging setup for alertd.
"""
from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

# 🔼⚙️
