"""
Synthetic data generation for SteamCity collections.
"""

from .data_generator import DataGenerator, GenerationReport

__all__ = ["DataGenerator", "GenerationReport"]
