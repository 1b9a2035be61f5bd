"""
SteamCity Platform - citizen-science data API.

This package serves flat JSON collections of clusters, protocols, experiments,
sensor devices and measurements through a REST API, with an in-memory query
engine for filtering, search and reference enrichment.
"""

__version__ = "0.1.0"
__author__ = "SteamCity Platform Team"
