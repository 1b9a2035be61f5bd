"""
Data validation utilities for SteamCity collections.

This module provides validators for timestamps, geographic coordinates,
bounding boxes, date ranges and cross-collection references, with
structured error reporting.
"""

from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Sequence, Type
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


class ValidationErrorType(Enum):
    """Types of validation errors."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_FORMAT = "invalid_format"
    OUT_OF_BOUNDS = "out_of_bounds"
    INCONSISTENT_DATA = "inconsistent_data"
    DANGLING_REFERENCE = "dangling_reference"


@dataclass
class ValidationError:
    """Represents a validation error with context."""
    error_type: ValidationErrorType
    field_name: str
    message: str
    value: Any = None
    context: Optional[Dict[str, Any]] = None


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool = True
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        """Get formatted error message."""
        return "; ".join(error.message for error in self.errors)

    def add_error(self, error: ValidationError) -> None:
        """Add a validation error."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a validation warning."""
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> None:
        """Fold another result into this one."""
        for error in other.errors:
            self.add_error(error)
        self.warnings.extend(other.warnings)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or datetime into a timezone-aware UTC datetime.

    Naive values are taken to be UTC. Returns None for missing or
    unparsable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle given by its north-east and south-west corners."""
    north: float
    east: float
    south: float
    west: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check whether a coordinate lies inside the box (edges included)."""
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east


class LocationValidator:
    """Validator for latitude/longitude pairs."""

    def validate(self, location: Any) -> ValidationResult:
        """
        Validate a location mapping with latitude and longitude keys.

        Args:
            location: Mapping to validate

        Returns:
            ValidationResult with validation status and errors
        """
        result = ValidationResult()

        if not isinstance(location, dict):
            result.add_error(ValidationError(
                error_type=ValidationErrorType.INVALID_FORMAT,
                field_name="location",
                message="Location must be an object with latitude and longitude",
                value=location
            ))
            return result

        for name, limit in (("latitude", 90.0), ("longitude", 180.0)):
            value = location.get(name)
            if value is None:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.MISSING_REQUIRED_FIELD,
                    field_name=name,
                    message=f"Location {name} is required",
                ))
            elif isinstance(value, bool) or not isinstance(value, (int, float)):
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.INVALID_FORMAT,
                    field_name=name,
                    message=f"Location {name} must be a number",
                    value=value
                ))
            elif not -limit <= value <= limit:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.OUT_OF_BOUNDS,
                    field_name=name,
                    message=f"Location {name} {value} is outside [-{limit:g}, {limit:g}]",
                    value=value
                ))

        return result

    def coordinates(self, location: Any) -> Optional[tuple]:
        """Return (latitude, longitude) for a valid location, else None."""
        if not self.validate(location).is_valid:
            return None
        return float(location["latitude"]), float(location["longitude"])

    def parse_corner(self, text: str, field_name: str) -> tuple:
        """
        Parse a "lat,lng" corner string.

        Raises:
            ValueError: If the string is not two in-range numbers
        """
        parts = [part.strip() for part in str(text).split(",")]
        if len(parts) != 2:
            raise ValueError(f"{field_name} must be formatted as 'lat,lng'")
        try:
            latitude, longitude = float(parts[0]), float(parts[1])
        except ValueError:
            raise ValueError(f"{field_name} must contain numeric coordinates")

        result = self.validate({"latitude": latitude, "longitude": longitude})
        if not result.is_valid:
            raise ValueError(f"{field_name}: {result.error_message}")
        return latitude, longitude

    def parse_bounding_box(self, north_east: str, south_west: str) -> BoundingBox:
        """Build a BoundingBox from two corner strings."""
        north, east = self.parse_corner(north_east, "northEast")
        south, west = self.parse_corner(south_west, "southWest")
        if south > north or west > east:
            raise ValueError("southWest corner must lie south-west of northEast corner")
        return BoundingBox(north=north, east=east, south=south, west=west)


class DateRangeValidator:
    """Validator for start/end date pairs."""

    def validate(self, start: Any, end: Any) -> ValidationResult:
        result = ValidationResult()
        parsed = {}

        for name, value in (("startDate", start), ("endDate", end)):
            if value is None:
                continue
            timestamp = parse_timestamp(value)
            if timestamp is None:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.INVALID_FORMAT,
                    field_name=name,
                    message=f"{name} must be an ISO-8601 date",
                    value=value
                ))
            else:
                parsed[name] = timestamp

        if len(parsed) == 2 and parsed["startDate"] > parsed["endDate"]:
            result.add_error(ValidationError(
                error_type=ValidationErrorType.INCONSISTENT_DATA,
                field_name="endDate",
                message="endDate must not be before startDate",
                value=end
            ))

        return result


class DataValidator:
    """
    Collection-level validation.

    Checks records against entity models and verifies that protocols
    reference existing clusters.
    """

    def validate_records(self, records: Sequence[Dict[str, Any]],
                         model: Type[BaseModel]) -> ValidationResult:
        """Validate every record of a collection against a pydantic model."""
        result = ValidationResult()

        for index, record in enumerate(records):
            try:
                model.model_validate(record)
            except PydanticValidationError as e:
                record_id = record.get("id", index) if isinstance(record, dict) else index
                for detail in e.errors():
                    result.add_error(ValidationError(
                        error_type=ValidationErrorType.INVALID_FORMAT,
                        field_name=".".join(str(part) for part in detail["loc"]),
                        message=f"Record {record_id}: {detail['msg']}",
                        value=detail.get("input"),
                        context={"record_id": record_id}
                    ))

        return result

    def check_protocol_references(self, protocols: Sequence[Dict[str, Any]],
                                  clusters: Sequence[Dict[str, Any]]) -> ValidationResult:
        """
        Verify protocol cluster references.

        A missing primary cluster is an error; a missing secondary cluster
        is reported as a warning.
        """
        result = ValidationResult()
        cluster_ids = {cluster.get("id") for cluster in clusters}

        for protocol in protocols:
            protocol_id = protocol.get("id")
            primary = protocol.get("primaryCluster")
            if primary not in cluster_ids:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.DANGLING_REFERENCE,
                    field_name="primaryCluster",
                    message=f"Protocol {protocol_id} references unknown primary cluster {primary}",
                    value=primary,
                    context={"protocol_id": protocol_id}
                ))
            for secondary in protocol.get("secondaryClusters") or []:
                if secondary not in cluster_ids:
                    result.add_warning(
                        f"Protocol {protocol_id} references unknown secondary cluster {secondary}"
                    )

        return result
