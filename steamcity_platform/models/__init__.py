"""
Data models and validation for the SteamCity platform.

This package provides Pydantic models for validation and serialization of
clusters, protocols, experiments, sensor devices and measurements, plus
collection-level validators.
"""

from .entities import (
    Difficulty,
    ExperimentStatus,
    LocationModel,
    ClusterModel,
    ProtocolModel,
    ExperimentCreate,
    ExperimentModel,
    SensorDeviceModel,
    MeasurementModel,
    generate_experiment_id,
)
from .validation import (
    BoundingBox,
    LocationValidator,
    DateRangeValidator,
    DataValidator,
    ValidationResult,
    ValidationError,
    ValidationErrorType,
    parse_timestamp,
)

__all__ = [
    # Entity models
    "Difficulty",
    "ExperimentStatus",
    "LocationModel",
    "ClusterModel",
    "ProtocolModel",
    "ExperimentCreate",
    "ExperimentModel",
    "SensorDeviceModel",
    "MeasurementModel",
    "generate_experiment_id",

    # Validation
    "BoundingBox",
    "LocationValidator",
    "DateRangeValidator",
    "DataValidator",
    "ValidationResult",
    "ValidationError",
    "ValidationErrorType",
    "parse_timestamp",
]
