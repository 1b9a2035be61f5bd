"""
Tests for the query engine over the sample collections.
"""

import pytest

from steamcity_platform.errors import AccessDeniedError, DataError, InvalidArgumentError, NotFoundError
from steamcity_platform.query.engine import DeviceFilters, ExperimentFilters, MeasurementFilters

PUBLIC_EXPERIMENT_ID = "exp_1760000000000_a1b2c3d4e"
PRIVATE_EXPERIMENT_ID = "exp_1760000000003_p3q4r5s6t"


def ids(records):
    return [record["id"] for record in records]


class TestClusters:
    """Cluster lookups."""

    def test_list_clusters_in_storage_order(self, engine):
        assert ids(engine.list_clusters().data) == [1, 2, 3, 4, 5]

    def test_get_cluster_accepts_string_id(self, engine):
        assert engine.get_cluster("2")["name"] == "Energy"

    def test_unknown_cluster_raises_not_found(self, engine):
        with pytest.raises(NotFoundError) as exc_info:
            engine.get_cluster(99)

        assert exc_info.value.message == "Cluster not found"
        assert exc_info.value.status_code == 404

    def test_cluster_protocols_use_primary_and_secondary_membership(self, engine):
        result = engine.get_cluster_protocols(3)

        assert ids(result.data) == ["decibel-detectives", "city-detective"]
        assert result.metadata["cluster"] == {"id": 3, "name": "Sound", "title": "Noise and Soundscapes"}


class TestProtocols:
    """Protocol listing, search and enrichment."""

    def test_list_without_filters_returns_everything(self, engine):
        result = engine.list_protocols()

        assert result.count == 8
        assert result.filters == {"cluster": None, "difficulty": None, "search": None}

    def test_cluster_filter_matches_secondary_clusters(self, engine):
        result = engine.list_protocols(cluster=1)
        assert ids(result.data) == ["co2-indoor", "outdoor-air-particles", "warm-walls", "mobility-regulation"]

    def test_cluster_and_difficulty_combine(self, engine):
        result = engine.list_protocols(cluster=1, difficulty="beginner")

        assert ids(result.data) == ["co2-indoor"]
        assert result.filters["cluster"] == 1
        assert result.filters["difficulty"] == "beginner"

    def test_text_search_is_case_insensitive(self, engine):
        assert ids(engine.list_protocols(search="AIR").data) == ["co2-indoor", "outdoor-air-particles"]

    def test_protocol_without_keywords_found_by_name(self, engine):
        result = engine.list_protocols(search="detective")
        assert ids(result.data) == ["decibel-detectives", "city-detective"]

    def test_get_protocol_attaches_cluster_projections(self, engine):
        protocol = engine.get_protocol("co2-indoor")

        assert protocol["primaryClusterData"] == {"id": 1, "name": "Air", "title": "Air Quality and Urban Health"}
        assert [c["id"] for c in protocol["secondaryClustersData"]] == [2]

    def test_secondary_clusters_follow_cluster_table_order(self, engine, store):
        protocols = store.load("protocols")
        for protocol in protocols:
            if protocol["id"] == "city-detective":
                protocol["secondaryClusters"] = [4, 3]
        store.replace("protocols", protocols)

        protocol = engine.get_protocol("city-detective")

        assert protocol["secondaryClusters"] == [4, 3]
        assert [c["name"] for c in protocol["secondaryClustersData"]] == ["Sound", "Mobility"]

    def test_get_unknown_protocol_raises_not_found(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_protocol("missing")

    def test_search_enriches_primary_cluster(self, engine):
        result = engine.search_protocols("noise")

        assert ids(result.data) == ["decibel-detectives"]
        assert result.data[0]["primaryClusterData"]["name"] == "Sound"
        assert result.filters == {"search": "noise", "cluster": None, "difficulty": None}

    def test_search_with_cluster_filter(self, engine):
        result = engine.search_protocols("mobility", cluster=4)
        assert ids(result.data) == ["mobility-regulation"]

    @pytest.mark.parametrize("query", [None, "", "  "])
    def test_search_requires_query(self, engine, query):
        with pytest.raises(InvalidArgumentError):
            engine.search_protocols(query)

    def test_search_on_empty_storage_returns_nothing(self, engine, store):
        store.replace("protocols", [])
        assert engine.search_protocols("air").data == []


class TestExperiments:
    """Experiment visibility, filtering and creation."""

    def test_private_experiments_hidden_by_default(self, engine):
        result = engine.list_experiments()

        assert result.count == 3
        assert PRIVATE_EXPERIMENT_ID not in ids(result.data)

    def test_include_private(self, engine):
        result = engine.list_experiments(ExperimentFilters(include_private=True))
        assert PRIVATE_EXPERIMENT_ID in ids(result.data)

    def test_status_filter(self, engine):
        result = engine.list_experiments(ExperimentFilters(status="active"))

        assert ids(result.data) == [PUBLIC_EXPERIMENT_ID]
        assert result.filters["status"] == "active"

    def test_search_covers_tags(self, engine):
        result = engine.list_experiments(ExperimentFilters(search="insulation"))
        assert [e["studentName"] for e in result.data] == ["Elena Dimitrova"]

    def test_start_date_range(self, engine):
        result = engine.list_experiments(ExperimentFilters(start_date="2025-10-01"))
        assert [e["studentName"] for e in result.data] == ["Elena Dimitrova", "Pablo García"]

    def test_inverted_date_range_rejected(self, engine):
        with pytest.raises(InvalidArgumentError):
            engine.list_experiments(ExperimentFilters(start_date="2025-11-01", end_date="2025-10-01"))

    def test_get_private_experiment_denied(self, engine):
        with pytest.raises(AccessDeniedError) as exc_info:
            engine.get_experiment(PRIVATE_EXPERIMENT_ID)

        assert exc_info.value.status_code == 403
        assert engine.get_experiment(PRIVATE_EXPERIMENT_ID, include_private=True)["studentName"] == "Giulia Bianchi"

    def test_get_unknown_experiment(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_experiment("exp_0_missing")

    def test_experiment_data_sorted_most_recent_first(self, engine):
        data = engine.get_experiment_data(PUBLIC_EXPERIMENT_ID)

        assert data["count"] == 5
        assert data["measurements"][0]["timestamp"] == "2025-11-10T12:00:00.000Z"
        assert data["measurements"][-1]["timestamp"] == "2025-11-10T02:00:00.000Z"

    def test_create_experiment_persists_record(self, engine, store):
        record = engine.create_experiment({
            "title": "  Noise at lunch  ",
            "description": "Sound levels in the canteen",
            "studentName": "Lucas Martin",
            "protocol": "decibel-detectives",
            "tags": ["sound"],
        })

        assert record["id"].startswith("exp_")
        assert record["title"] == "Noise at lunch"
        assert record["isPublic"] is True
        assert record["status"] == "planned"
        assert store.get_by_id("experiments", record["id"])["studentName"] == "Lucas Martin"

    @pytest.mark.parametrize("payload", [
        {"title": "t", "description": "d"},
        {"title": " ", "description": "d", "studentName": "s"},
        {"title": "t", "description": "d", "studentName": "s", "unexpected": 1},
        {"title": "t", "description": "d", "studentName": "s", "status": "archived"},
        {"title": "t", "description": "d", "studentName": "s",
         "startDate": "2025-11-10T00:00:00Z", "endDate": "2025-11-01T00:00:00Z"},
    ])
    def test_create_experiment_rejects_invalid_payload(self, engine, store, payload):
        with pytest.raises(DataError):
            engine.create_experiment(payload)

        assert len(store.load("experiments")) == 4


class TestDevices:
    """Sensor device listing."""

    def test_has_location_false(self, engine):
        result = engine.list_devices(DeviceFilters(has_location=False))
        assert ids(result.data) == ["sens-003-sound"]

    def test_bounding_box(self, engine):
        result = engine.list_devices(DeviceFilters(north_east="47,0", south_west="46,-2"))

        assert ids(result.data) == ["sens-001-co2", "sens-001-temperature"]
        assert result.filters["boundingBox"] == {"northEast": [47.0, 0.0], "southWest": [46.0, -2.0]}

    def test_bounding_box_needs_both_corners(self, engine):
        with pytest.raises(InvalidArgumentError) as exc_info:
            engine.list_devices(DeviceFilters(north_east="47,0"))

        assert exc_info.value.parameter == "bounds"

    @pytest.mark.parametrize("corner", ["47", "north,east", "95,0"])
    def test_malformed_corner(self, engine, corner):
        with pytest.raises(InvalidArgumentError):
            engine.list_devices(DeviceFilters(north_east=corner, south_west="46,-2"))

    def test_status_filter(self, engine):
        assert ids(engine.list_devices(DeviceFilters(status="inactive")).data) == ["sens-002-temperature"]

    def test_get_device(self, engine):
        assert engine.get_device("sens-003-sound")["unit"] == "dB"
        with pytest.raises(NotFoundError):
            engine.get_device("sens-999")

    def test_sensor_types(self, engine):
        assert engine.sensor_types() == ["co2", "sound", "temperature"]

    def test_sensor_types_for_experiment(self, engine):
        assert engine.sensor_types_for_experiment(PUBLIC_EXPERIMENT_ID) == ["co2", "temperature"]

        with pytest.raises(InvalidArgumentError):
            engine.sensor_types_for_experiment(None)


class TestMeasurements:
    """Measurement queries, ingestion and aggregation."""

    def test_listing_is_most_recent_first(self, engine):
        result = engine.list_measurements()

        assert result.page.total_count == 8
        timestamps = [m["timestamp"] for m in result.data]
        assert timestamps[0] == "2025-11-10T12:00:00.000Z"
        assert timestamps[-1] == "2025-11-04T09:30:00.000Z"

    def test_period_is_relative_to_clock(self, engine):
        assert engine.list_measurements(MeasurementFilters(period="24h")).page.total_count == 5
        assert engine.list_measurements(MeasurementFilters(period="7d")).page.total_count == 8

    def test_explicit_start_overrides_period(self, engine):
        filters = MeasurementFilters(period="24h", start="2025-11-01T00:00:00Z")
        assert engine.list_measurements(filters).page.total_count == 8

    def test_unknown_period_rejected(self, engine):
        with pytest.raises(InvalidArgumentError) as exc_info:
            engine.list_measurements(MeasurementFilters(period="1y"))

        assert exc_info.value.parameter == "period"

    def test_pagination(self, engine):
        result = engine.list_measurements(page=2, limit=3)
        envelope = result.to_envelope()

        assert envelope["count"] == 3
        assert envelope["totalPages"] == 3
        assert envelope["hasNext"] is True
        assert envelope["hasPrev"] is True

    def test_limit_capped_at_max_page_size(self, engine):
        engine.config.max_page_size = 2
        assert engine.list_measurements(limit=50).page.limit == 2

    def test_exact_filters_and_echo(self, engine):
        result = engine.list_measurements(MeasurementFilters(sensor_type="temperature", student_name="Elena Dimitrova"))

        assert [m["value"] for m in result.data] == [12.1, 8.7]
        assert result.filters["period"] == "all"
        assert result.filters["sensorType"] == "temperature"

    def test_has_location(self, engine):
        result = engine.list_measurements(MeasurementFilters(has_location=False))
        assert [m["sensorType"] for m in result.data] == ["sound"]

    def test_value_range_is_inclusive(self, engine):
        result = engine.list_measurements(MeasurementFilters(min_value=12.1, max_value=64.5))

        assert sorted(m["value"] for m in result.data) == [12.1, 19.4, 21.2, 64.5]
        assert result.filters["valueRange"] == {"min": 12.1, "max": 64.5}

    def test_value_range_single_bound(self, engine):
        high = engine.list_measurements(MeasurementFilters(min_value=500))

        assert [m["value"] for m in high.data] == [1045, 812, 512]
        assert engine.list_measurements().filters["valueRange"] is None

    def test_inverted_value_range_rejected(self, engine):
        with pytest.raises(InvalidArgumentError) as exc_info:
            engine.list_measurements(MeasurementFilters(min_value=100, max_value=10))

        assert exc_info.value.parameter == "minValue"

    def test_add_single_measurement(self, engine, store):
        stored = engine.add_measurements({
            "experimentId": PUBLIC_EXPERIMENT_ID,
            "studentName": "Emma Leroy",
            "sensorType": "co2",
            "value": 640,
            "unit": "ppm",
            "timestamp": "2025-11-10T13:00:00Z",
        })

        assert len(stored) == 1
        assert stored[0]["value"] == 640
        assert len(store.load("measurements")) == 9

    def test_add_batch_is_all_or_nothing(self, engine, store):
        batch = [
            {"experimentId": PUBLIC_EXPERIMENT_ID, "studentName": "Emma Leroy", "sensorType": "co2", "value": 600},
            {"experimentId": PUBLIC_EXPERIMENT_ID, "studentName": "Emma Leroy", "sensorType": "co2"},
        ]

        with pytest.raises(DataError) as exc_info:
            engine.add_measurements(batch)

        assert exc_info.value.message.startswith("Measurement 1:")
        assert len(store.load("measurements")) == 8

    def test_add_empty_batch_rejected(self, engine):
        with pytest.raises(InvalidArgumentError):
            engine.add_measurements([])

    def test_unique_sensors_aggregation(self, engine):
        result = engine.unique_sensors()

        assert ids(result.data) == [
            f"{PUBLIC_EXPERIMENT_ID}_co2",
            f"{PUBLIC_EXPERIMENT_ID}_temperature",
            "exp_1760000000001_f5g6h7i8j_temperature",
            "exp_1760000000002_k9l0m1n2o_sound",
        ]
        assert result.metadata["totalMeasurements"] == 8

        co2 = result.data[0]
        assert co2["measurementCount"] == 3
        assert co2["minValue"] == 512
        assert co2["maxValue"] == 1045
        assert co2["avgValue"] == 789.67
        assert co2["lastValue"] == 1045
        assert co2["firstMeasurement"] == "2025-11-10T02:00:00.000Z"
        assert co2["lastMeasurement"] == "2025-11-10T12:00:00.000Z"
        assert co2["deviceIds"] == ["sens-001-co2"]

    def test_unique_sensors_paginated(self, engine):
        result = engine.unique_sensors(page=2, limit=3)

        assert result.count == 1
        assert result.page.total_count == 4

    def test_measurement_stats(self, engine):
        stats = engine.measurement_stats()

        assert stats["totalEntries"] == 8
        assert stats["sensorTypes"] == ["co2", "temperature", "sound"]
        assert stats["students"] == ["Emma Leroy", "Elena Dimitrova", "Pablo García"]
        assert stats["dateRange"]["earliest"].startswith("2025-11-04T09:30")
        assert stats["dateRange"]["latest"].startswith("2025-11-10T12:00")

    def test_measurement_stats_on_empty_collection(self, engine, store):
        store.replace("measurements", [])
        stats = engine.measurement_stats()

        assert stats["totalEntries"] == 0
        assert stats["dateRange"] == {"earliest": None, "latest": None}

    def test_diverse_measurements_share_per_location(self, engine):
        result = engine.diverse_measurements(limit=4)

        assert result.count == 4
        assert result.metadata == {"totalCount": 7, "locationsCount": 2}
        cities = {round(m["location"]["latitude"]) for m in result.data}
        assert cities == {46, 43}

    def test_diverse_measurements_default_limit(self, engine):
        assert engine.diverse_measurements().count == 7
