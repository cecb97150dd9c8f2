#
# src/alertd/runtime/__init__.py
#
"""
Supervision of the long-running engine process.
"""
from .spawner import AsyncioProcessSpawner
from .supervisor import ExitSubscription, ProcessSupervisor

__all__ = ["AsyncioProcessSpawner", "ExitSubscription", "ProcessSupervisor"]

# 🔼⚙️
