"""
HTTP boundary for the SteamCity platform.

This package contains the FastAPI application and its dependencies.
"""

from .rest_api import app, get_data_exporter, get_query_engine, get_system_config

__all__ = [
    'app',
    'get_data_exporter',
    'get_query_engine',
    'get_system_config'
]
