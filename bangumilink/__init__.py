"""
BangumiLink - Hard-link and rename an anime library using Bangumi metadata
"""

__version__ = "0.1.0"
