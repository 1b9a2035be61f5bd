"""
Tests for the pydantic entity models.
"""

import re
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from steamcity_platform.models.entities import (
    ClusterModel, Difficulty, ExperimentCreate, ExperimentModel, ExperimentStatus, LocationModel,
    MeasurementModel, ProtocolModel, SensorDeviceModel, generate_experiment_id
)


class TestClusterAndProtocol:
    """Reference data models."""

    def test_cluster_reads_camel_case_keys(self):
        cluster = ClusterModel.model_validate({
            "id": 1, "name": "Air", "title": "Air Quality",
            "forStudents": "Measure CO2", "linkedClusters": [2, 3],
        })

        assert cluster.for_students == "Measure CO2"
        assert cluster.to_record()["linkedClusters"] == [2, 3]

    def test_cluster_requires_title(self):
        with pytest.raises(ValidationError):
            ClusterModel.model_validate({"id": 1, "name": "Air"})

    def test_protocol_defaults(self):
        protocol = ProtocolModel.model_validate({"id": "p1", "name": "Protocol", "primaryCluster": 1})

        assert protocol.secondary_clusters == []
        assert protocol.keywords == []
        assert protocol.type == "experimental"
        assert protocol.difficulty is None

    def test_protocol_difficulty_enum(self):
        protocol = ProtocolModel.model_validate(
            {"id": "p1", "name": "Protocol", "primaryCluster": 1, "difficulty": "advanced"}
        )
        assert protocol.difficulty == Difficulty.ADVANCED.value

        with pytest.raises(ValidationError):
            ProtocolModel.model_validate({"id": "p1", "name": "Protocol", "primaryCluster": 1, "difficulty": "expert"})


class TestExperiment:
    """Experiment creation payloads and stored records."""

    def test_generated_id_format(self):
        assert re.fullmatch(r"exp_\d{13}_[a-z0-9]{9}", generate_experiment_id())

    def test_create_defaults(self):
        payload = ExperimentCreate.model_validate({"title": "T", "description": "D", "studentName": "S"})

        assert payload.is_public is True
        assert payload.status == ExperimentStatus.PLANNED
        assert payload.start_date.tzinfo is not None
        assert payload.tags == []

    def test_text_fields_are_trimmed(self):
        payload = ExperimentCreate.model_validate({"title": " T ", "description": " D", "studentName": "S "})
        assert (payload.title, payload.description, payload.student_name) == ("T", "D", "S")

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            ExperimentCreate.model_validate({"title": "T", "description": "D", "studentName": "S", "grade": 3})

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            ExperimentCreate.model_validate({
                "title": "T", "description": "D", "studentName": "S",
                "startDate": "2025-11-10T00:00:00Z", "endDate": "2025-11-09T00:00:00Z",
            })

    def test_naive_dates_are_utc(self):
        payload = ExperimentCreate.model_validate({
            "title": "T", "description": "D", "studentName": "S", "startDate": "2025-11-10T08:00:00",
        })
        assert payload.start_date == datetime(2025, 11, 10, 8, tzinfo=timezone.utc)

    def test_from_create_assigns_identity(self):
        payload = ExperimentCreate.model_validate({"title": "T", "description": "D", "studentName": "S"})

        record = ExperimentModel.from_create(payload).to_record()

        assert record["id"].startswith("exp_")
        assert "createdAt" in record
        assert record["studentName"] == "S"
        assert "endDate" not in record


class TestSensorAndMeasurement:
    """Device and reading models."""

    def test_location_bounds(self):
        LocationModel(latitude=90, longitude=-180)
        with pytest.raises(ValidationError):
            LocationModel(latitude=91, longitude=0)

    def test_device_defaults(self):
        device = SensorDeviceModel.model_validate({"id": "s1", "name": "Sensor", "sensorType": "co2"})

        assert device.status == "active"
        assert device.to_record() == {
            "id": "s1", "name": "Sensor", "sensorType": "co2", "status": "active", "metadata": {}
        }

    def test_measurement_requires_value(self):
        with pytest.raises(ValidationError):
            MeasurementModel.model_validate({"experimentId": "e", "studentName": "s", "sensorType": "co2"})

    @pytest.mark.parametrize("quality", [-0.1, 1.5])
    def test_measurement_quality_range(self, quality):
        with pytest.raises(ValidationError):
            MeasurementModel.model_validate({
                "experimentId": "e", "studentName": "s", "sensorType": "co2", "value": 1, "quality": quality,
            })

    def test_measurement_record_shape(self):
        record = MeasurementModel.model_validate({
            "experimentId": "e", "studentName": "s", "sensorType": "co2", "value": "612",
            "timestamp": "2025-11-10T10:00:00Z", "location": {"latitude": 46.16, "longitude": -1.15},
        }).to_record()

        assert record["value"] == 612.0
        assert record["unit"] == ""
        assert record["notes"] == ""
        assert record["location"] == {"latitude": 46.16, "longitude": -1.15}
        assert record["timestamp"].startswith("2025-11-10T10:00:00")
