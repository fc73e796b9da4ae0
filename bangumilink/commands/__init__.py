"""
Commands module for BangumiLink CLI
"""

from .list_command import list_command
from .process_handler import process_library
from .rename_command import rename_command
from .test_command import test_command

__all__ = ["list_command", "process_library", "rename_command", "test_command"]
