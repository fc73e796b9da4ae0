"""
Library package - Filesystem helpers for scanning and building the output tree
"""

from .link import materialize
from .paths import PathManager

__all__ = [
    "PathManager",
    "materialize",
]
