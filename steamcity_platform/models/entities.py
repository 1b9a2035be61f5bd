"""
Pydantic models for SteamCity entities.

This module defines data models for clusters, protocols, experiments, sensor
devices and measurements. Models use snake_case attributes and serialize to
the camelCase keys of the JSON collection files.
"""

import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    """Protocol difficulty levels."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ExperimentStatus(str, Enum):
    """Experiment lifecycle states."""
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def generate_experiment_id() -> str:
    """Build an id of the form exp_<epoch-ms>_<9 base36 chars>."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"exp_{int(time.time() * 1000)}_{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base model mapping snake_case attributes onto camelCase record keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible record as stored on disk."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class LocationModel(RecordModel):
    """Geographic position of a sensor or measurement."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class ClusterModel(RecordModel):
    """Thematic category grouping related protocols."""

    id: int
    name: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    challenges: Optional[str] = None
    for_students: Optional[str] = None
    in_society: Optional[str] = None
    role_of_schools: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    leaders: List[str] = Field(default_factory=list)
    protocols: List[str] = Field(default_factory=list)
    research_questions: List[str] = Field(default_factory=list)
    glossary: List[str] = Field(default_factory=list)
    linked_disciplines: Optional[str] = None
    linked_clusters: List[Any] = Field(default_factory=list)
    url: Optional[str] = None


class ProtocolModel(RecordModel):
    """Documented experimental procedure."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    primary_cluster: int
    secondary_clusters: List[int] = Field(default_factory=list)
    url: Optional[str] = None
    type: str = "experimental"
    category: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    duration: Optional[str] = None
    materials: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "co2-indoor",
                "name": "CO2 sensors for indoor air quality",
                "primaryCluster": 1,
                "secondaryClusters": [3],
                "difficulty": "beginner",
                "keywords": ["co2", "air quality"]
            }
        }
    )


class ExperimentCreate(RecordModel):
    """Payload accepted when a student registers an experiment."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    protocol: Optional[str] = None
    student_name: str = Field(..., min_length=1, max_length=255)
    student_group: Optional[str] = None
    school: Optional[str] = None
    city: Optional[str] = None
    language: Optional[str] = None
    start_date: datetime = Field(default_factory=_utcnow)
    end_date: Optional[datetime] = None
    expected_sensors: List[str] = Field(default_factory=list)
    hypothesis: Optional[str] = None
    methodology: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    status: ExperimentStatus = ExperimentStatus.PLANNED

    model_config = ConfigDict(extra="forbid")

    @field_validator('title', 'description', 'student_name')
    @classmethod
    def validate_text_fields(cls, v):
        """Validate required text fields are not whitespace-only."""
        if not v.strip():
            raise ValueError("Text fields cannot be empty or whitespace-only")
        return v.strip()

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_timezone(cls, v):
        """Treat naive dates as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate the experiment does not end before it starts."""
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class ExperimentModel(ExperimentCreate):
    """Stored experiment with generated identity."""

    id: str = Field(default_factory=generate_experiment_id)
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_create(cls, payload: ExperimentCreate) -> "ExperimentModel":
        """Assign identity to a validated creation payload."""
        return cls(**payload.model_dump())


class SensorDeviceModel(RecordModel):
    """Physical sensor attached to an experiment."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    sensor_type: str = Field(..., min_length=1)
    experiment_id: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    location: Optional[LocationModel] = None
    status: str = "active"
    last_seen: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MeasurementModel(RecordModel):
    """Single sensor reading."""

    experiment_id: str = Field(..., min_length=1)
    student_name: str = Field(..., min_length=1)
    sensor_type: str = Field(..., min_length=1)
    value: float
    sensor_id: Optional[str] = None
    unit: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    quality: Optional[float] = Field(None, ge=0.0, le=1.0)
    location: Optional[LocationModel] = None
    notes: str = ""

    @field_validator('timestamp')
    @classmethod
    def normalize_timezone(cls, v):
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
