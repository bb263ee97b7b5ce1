"""
iacenv CLI module.

This module provides the management command line for iacenv.
"""

from .parser import CLI, main
from . import utils

__all__ = ["CLI", "main", "utils"]
