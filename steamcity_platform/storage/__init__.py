"""
Storage layer for the SteamCity platform.

This package provides the flat JSON file store that backs every collection.
"""

from .json_store import JSONStore, Record, get_store, set_store

__all__ = [
    "JSONStore",
    "Record",
    "get_store",
    "set_store",
]
