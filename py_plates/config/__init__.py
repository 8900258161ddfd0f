"""
Configuration for the plate simulation.
"""

from .config import Settings, settings
from .logging_setup import configure_logging

__all__ = ['Settings', 'settings', 'configure_logging']
