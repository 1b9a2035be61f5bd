"""
Query engine for SteamCity collections.

This module wires the JSON store to the collection filters for clusters,
protocols, experiments, sensor devices and measurements, and builds the
result envelopes served by the API and the CLI.
"""

import logging
import random
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from ..config import QueryConfig, get_config
from ..errors import (
    AccessDeniedError, DataError, InvalidArgumentError, NotFoundError, create_error_context
)
from ..models.entities import ExperimentCreate, ExperimentModel, MeasurementModel
from ..models.validation import BoundingBox, DateRangeValidator, LocationValidator, parse_timestamp
from ..storage.json_store import JSONStore, Record, get_store
from .filters import (
    DateRange, Excluding, ExactMatch, Membership, Presence, QueryResult, Range, Substring, WithinBounds,
    compose_filters, describe_filters, enrich_with_reference, paginate, project,
    search as search_records, sort_by_timestamp
)

logger = logging.getLogger(__name__)

PROTOCOL_TEXT_FIELDS = ("name", "description")
PROTOCOL_KEYWORD_FIELDS = ("keywords",)
EXPERIMENT_TEXT_FIELDS = ("title", "description", "studentName", "school", "hypothesis")
EXPERIMENT_TAG_FIELDS = ("tags",)
DEVICE_TEXT_FIELDS = ("id", "name", "description", "sensorType")
MEASUREMENT_TEXT_FIELDS = ("sensorType", "studentName", "notes", "experimentId")

PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "all": None,
}


@dataclass
class ExperimentFilters:
    """Filtering parameters for experiment listings."""
    student_name: Optional[str] = None
    student_group: Optional[str] = None
    school: Optional[str] = None
    city: Optional[str] = None
    language: Optional[str] = None
    status: Optional[str] = None
    protocol: Optional[str] = None
    search: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    include_private: bool = False


@dataclass
class DeviceFilters:
    """Filtering parameters for sensor device listings."""
    experiment_id: Optional[str] = None
    sensor_type: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    has_location: Optional[bool] = None
    north_east: Optional[str] = None
    south_west: Optional[str] = None


@dataclass
class MeasurementFilters:
    """Filtering parameters for measurement queries."""
    sensor_id: Optional[str] = None
    experiment_id: Optional[str] = None
    sensor_type: Optional[str] = None
    student_name: Optional[str] = None
    search: Optional[str] = None
    period: str = "all"
    start: Optional[str] = None
    end: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    has_location: Optional[bool] = None
    north_east: Optional[str] = None
    south_west: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryEngine:
    """
    Query engine for retrieving and summarizing SteamCity data.

    Every call loads a fresh snapshot from the store, applies the requested
    filters and returns a new result; the engine keeps no state between
    calls beyond its collaborators.
    """

    def __init__(self, store: Optional[JSONStore] = None, config: Optional[QueryConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None, rng: Optional[random.Random] = None):
        """
        Initialize the query engine.

        Args:
            store: Collection store (defaults to the global store)
            config: Query defaults (defaults to the global configuration)
            clock: Returns the current time; used for relative periods
            rng: Random source for diverse sampling
        """
        self.store = store or get_store()
        self.config = config or get_config().query
        self.clock = clock or _utcnow
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)
        self._locations = LocationValidator()

    # Clusters

    def list_clusters(self) -> QueryResult:
        return QueryResult(data=self.store.load("clusters"))

    def get_cluster(self, cluster_id: Union[int, str]) -> Record:
        cluster = self.store.get_by_id("clusters", cluster_id)
        if cluster is None:
            raise NotFoundError("Cluster not found", entity_type="cluster", entity_id=cluster_id,
                                context=create_error_context("get_cluster", "clusters", str(cluster_id)))
        return cluster

    def get_cluster_protocols(self, cluster_id: Union[int, str]) -> QueryResult:
        """Protocols whose primary or secondary cluster is the given cluster."""
        cluster = self.get_cluster(cluster_id)
        protocols = compose_filters(
            self.store.load("protocols"),
            Membership("primaryCluster", cluster.get("id"), "secondaryClusters")
        )
        return QueryResult(data=protocols, metadata={"cluster": project(cluster)})

    # Protocols

    def _protocol_filters(self, cluster: Optional[int], difficulty: Optional[str]) -> list:
        return [
            Membership("primaryCluster", cluster, "secondaryClusters", name="cluster"),
            ExactMatch("difficulty", difficulty),
        ]

    def list_protocols(self, cluster: Optional[int] = None, difficulty: Optional[str] = None,
                       search: Optional[str] = None) -> QueryResult:
        """
        List protocols, optionally filtered.

        Args:
            cluster: Cluster id matched against primary or secondary clusters
            difficulty: Exact difficulty level
            search: Case-insensitive text over name, description and keywords

        Returns:
            QueryResult echoing the applied filters
        """
        predicates = self._protocol_filters(cluster, difficulty)
        predicates.append(Substring(PROTOCOL_TEXT_FIELDS, search, PROTOCOL_KEYWORD_FIELDS))

        data = compose_filters(self.store.load("protocols"), *predicates)
        self.logger.debug(f"Protocol listing matched {len(data)} records")
        return QueryResult(data=data, filters=describe_filters(predicates))

    def get_protocol(self, protocol_id: str) -> Dict[str, Any]:
        """Protocol with projections of its primary and secondary clusters."""
        protocol = self.store.get_by_id("protocols", protocol_id)
        if protocol is None:
            raise NotFoundError("Protocol not found", entity_type="protocol", entity_id=protocol_id,
                                context=create_error_context("get_protocol", "protocols", protocol_id))

        clusters = self.store.load("clusters")
        enriched = enrich_with_reference([protocol], clusters, "primaryCluster")
        enriched = enrich_with_reference(enriched, clusters, "secondaryClusters", table_order=True)
        return enriched[0]

    def search_protocols(self, query: Optional[str], cluster: Optional[int] = None,
                         difficulty: Optional[str] = None) -> QueryResult:
        """
        Search protocols by text, with optional cluster and difficulty filters.

        Raises:
            InvalidArgumentError: If the query is missing or blank
        """
        predicates = self._protocol_filters(cluster, difficulty)
        matches = search_records(
            self.store.load("protocols"), query,
            PROTOCOL_TEXT_FIELDS, PROTOCOL_KEYWORD_FIELDS,
            extra_predicates=predicates
        )
        data = enrich_with_reference(matches, self.store.load("clusters"), "primaryCluster")

        self.logger.info(f"Protocol search '{query}' matched {len(data)} records")
        return QueryResult(
            data=data,
            filters={"search": str(query).strip(), **describe_filters(predicates)}
        )

    # Experiments

    def list_experiments(self, filters: Optional[ExperimentFilters] = None) -> QueryResult:
        """List experiments; private ones are hidden unless requested."""
        filters = filters or ExperimentFilters()
        self._check_date_range(filters.start_date, filters.end_date)

        predicates = [
            ExactMatch("studentName", filters.student_name),
            ExactMatch("studentGroup", filters.student_group),
            ExactMatch("school", filters.school),
            ExactMatch("city", filters.city),
            ExactMatch("language", filters.language),
            ExactMatch("status", filters.status),
            ExactMatch("protocol", filters.protocol),
            Substring(EXPERIMENT_TEXT_FIELDS, filters.search, EXPERIMENT_TAG_FIELDS),
            DateRange("startDate", filters.start_date, filters.end_date, name="dateRange"),
        ]
        visibility = Excluding("isPublic", None if filters.include_private else False)

        data = compose_filters(self.store.load("experiments"), *predicates, visibility)
        return QueryResult(data=data, filters=describe_filters(predicates))

    def get_experiment(self, experiment_id: str, include_private: bool = False) -> Record:
        experiment = self.store.get_by_id("experiments", experiment_id)
        context = create_error_context("get_experiment", "experiments", experiment_id)
        if experiment is None:
            raise NotFoundError("Experiment not found", entity_type="experiment",
                                entity_id=experiment_id, context=context)
        if experiment.get("isPublic") is False and not include_private:
            raise AccessDeniedError("Access denied to private experiment", context=context)
        return experiment

    def get_experiment_data(self, experiment_id: str) -> Dict[str, Any]:
        """Experiment with its measurements, most recent first."""
        experiment = self.get_experiment(experiment_id)
        measurements = sort_by_timestamp(
            ExactMatch("experimentId", experiment.get("id"))(self.store.load("measurements"))
        )
        return {
            "experiment": experiment,
            "measurements": measurements,
            "count": len(measurements),
        }

    def create_experiment(self, payload: Mapping[str, Any]) -> Record:
        """
        Validate and store a new experiment.

        Raises:
            DataError: If the payload fails validation
        """
        try:
            experiment = ExperimentModel.from_create(ExperimentCreate.model_validate(payload))
        except PydanticValidationError as e:
            raise DataError(
                _validation_message(e),
                context=create_error_context("create_experiment", "experiments"),
                original_exception=e
            )

        record = experiment.to_record()
        self.store.append("experiments", [record])
        self.logger.info(f"Created experiment {record['id']}", extra={"experiment_id": record["id"]})
        return record

    # Sensor devices

    def list_devices(self, filters: Optional[DeviceFilters] = None) -> QueryResult:
        filters = filters or DeviceFilters()
        predicates = [
            ExactMatch("experimentId", filters.experiment_id),
            ExactMatch("sensorType", filters.sensor_type),
            ExactMatch("status", filters.status),
            Substring(DEVICE_TEXT_FIELDS, filters.search),
            Presence("location", filters.has_location, name="hasLocation"),
            WithinBounds("location", self._bounding_box(filters.north_east, filters.south_west)),
        ]
        data = compose_filters(self.store.load("sensors"), *predicates)
        return QueryResult(data=data, filters=describe_filters(predicates))

    def get_device(self, device_id: str) -> Record:
        device = self.store.get_by_id("sensors", device_id)
        if device is None:
            raise NotFoundError("Sensor device not found", entity_type="sensor", entity_id=device_id,
                                context=create_error_context("get_device", "sensors", device_id))
        return device

    def sensor_types(self) -> List[str]:
        """Sorted sensor types seen across devices and measurements."""
        records = self.store.load("sensors") + self.store.load("measurements")
        return sorted({r["sensorType"] for r in records if isinstance(r.get("sensorType"), str)})

    def sensor_types_for_experiment(self, experiment_id: Optional[str]) -> List[str]:
        if not experiment_id:
            raise InvalidArgumentError("experimentId parameter is required", parameter="experimentId")

        records = self.store.load("sensors") + self.store.load("measurements")
        matching = ExactMatch("experimentId", experiment_id)(records)
        return sorted({r["sensorType"] for r in matching if isinstance(r.get("sensorType"), str)})

    # Measurements

    def _measurement_predicates(self, filters: MeasurementFilters) -> list:
        if filters.period not in PERIODS:
            raise InvalidArgumentError(
                f"Invalid period '{filters.period}'. Expected one of: {', '.join(PERIODS)}",
                parameter="period"
            )
        self._check_date_range(filters.start, filters.end)
        if filters.min_value is not None and filters.max_value is not None \
                and filters.min_value > filters.max_value:
            raise InvalidArgumentError("minValue must not be greater than maxValue", parameter="minValue")

        start = filters.start
        if start is None and PERIODS[filters.period] is not None:
            start = self.clock() - PERIODS[filters.period]

        return [
            ExactMatch("sensorId", filters.sensor_id),
            ExactMatch("experimentId", filters.experiment_id),
            ExactMatch("sensorType", filters.sensor_type),
            ExactMatch("studentName", filters.student_name),
            Substring(MEASUREMENT_TEXT_FIELDS, filters.search),
            DateRange("timestamp", start, filters.end, name="timeRange"),
            Range("value", filters.min_value, filters.max_value, name="valueRange"),
            Presence("location", filters.has_location, name="hasLocation"),
            WithinBounds("location", self._bounding_box(filters.north_east, filters.south_west)),
        ]

    def query_measurements(self, filters: Optional[MeasurementFilters] = None) -> QueryResult:
        """Every matching measurement, most recent first, without paging."""
        filters = filters or MeasurementFilters()
        predicates = self._measurement_predicates(filters)
        data = sort_by_timestamp(compose_filters(self.store.load("measurements"), *predicates))
        return QueryResult(data=data, filters={"period": filters.period, **describe_filters(predicates)})

    def _page_limit(self, limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        return min(limit, self.config.max_page_size)

    def list_measurements(self, filters: Optional[MeasurementFilters] = None, page: int = 1,
                          limit: Optional[int] = None) -> QueryResult:
        """
        Filtered measurements, most recent first, one page at a time.

        Raises:
            InvalidArgumentError: For an unknown period, bad dates or bad paging
        """
        result = self.query_measurements(filters)
        result.page = paginate(result.data, page, self._page_limit(limit, self.config.measurement_limit))
        result.data = result.page.items
        return result

    def add_measurements(self, payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> List[Record]:
        """
        Validate and store one measurement or a batch.

        Raises:
            DataError: If any entry fails validation; nothing is stored then
        """
        entries = [payload] if isinstance(payload, Mapping) else list(payload)
        if not entries:
            raise InvalidArgumentError("At least one measurement is required", parameter="measurements")

        records = []
        for index, entry in enumerate(entries):
            try:
                records.append(MeasurementModel.model_validate(entry).to_record())
            except PydanticValidationError as e:
                raise DataError(
                    f"Measurement {index}: {_validation_message(e)}",
                    context=create_error_context("add_measurements", "measurements", index=index),
                    original_exception=e
                )

        self.store.append("measurements", records)
        self.logger.info(f"Stored {len(records)} measurements")
        return records

    def unique_sensors(self, filters: Optional[MeasurementFilters] = None, page: int = 1,
                       limit: Optional[int] = None) -> QueryResult:
        """
        One summary row per experiment and sensor type.

        Rows keep the order in which each pair first appears in the
        most-recent-first measurement listing.
        """
        measurements = self.query_measurements(filters)
        sensors = list(self._aggregate_sensors(measurements.data).values())

        result = QueryResult(
            data=sensors,
            filters=measurements.filters,
            metadata={"totalMeasurements": measurements.count}
        )
        result.page = paginate(sensors, page, self._page_limit(limit, self.config.default_page_size))
        result.data = result.page.items
        return result

    def _aggregate_sensors(self, measurements: Sequence[Record]) -> "OrderedDict[str, Dict[str, Any]]":
        groups: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        stats: Dict[str, Dict[str, Any]] = {}

        for m in measurements:
            key = f"{m.get('experimentId')}_{m.get('sensorType')}"
            if key not in groups:
                groups[key] = {
                    "id": key,
                    "experimentId": m.get("experimentId"),
                    "studentName": m.get("studentName"),
                    "sensorType": m.get("sensorType"),
                    "unit": m.get("unit", ""),
                    "location": m.get("location"),
                    "measurementCount": 0,
                    "firstMeasurement": None,
                    "lastMeasurement": None,
                    "lastValue": None,
                    "deviceIds": [],
                }
                stats[key] = {"values": [], "first": None, "last": None}

            group, state = groups[key], stats[key]
            group["measurementCount"] += 1

            device_id = m.get("sensorId") or (m.get("metadata") or {}).get("deviceId")
            if device_id and device_id not in group["deviceIds"]:
                group["deviceIds"].append(device_id)

            value = m.get("value")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                state["values"].append(value)

            timestamp = parse_timestamp(m.get("timestamp"))
            if timestamp is None:
                continue
            if state["first"] is None or timestamp < state["first"]:
                state["first"] = timestamp
                group["firstMeasurement"] = m.get("timestamp")
            if state["last"] is None or timestamp > state["last"]:
                state["last"] = timestamp
                group["lastMeasurement"] = m.get("timestamp")
                group["lastValue"] = value

        for key, group in groups.items():
            values = stats[key]["values"]
            group["minValue"] = round(min(values), 2) if values else None
            group["maxValue"] = round(max(values), 2) if values else None
            group["avgValue"] = round(sum(values) / len(values), 2) if values else None

        return groups

    def measurement_stats(self) -> Dict[str, Any]:
        """Totals across the whole measurement collection."""
        measurements = self.store.load("measurements")
        timestamps = [t for t in (parse_timestamp(m.get("timestamp")) for m in measurements) if t]

        def distinct(field: str) -> List[Any]:
            return list(OrderedDict.fromkeys(m[field] for m in measurements if m.get(field) is not None))

        return {
            "totalEntries": len(measurements),
            "sensorTypes": distinct("sensorType"),
            "students": distinct("studentName"),
            "experiments": distinct("experimentId"),
            "dateRange": {
                "earliest": min(timestamps).isoformat() if timestamps else None,
                "latest": max(timestamps).isoformat() if timestamps else None,
            },
        }

    def diverse_measurements(self, limit: Optional[int] = None) -> QueryResult:
        """
        Sample measurements spread across distinct locations.

        Located measurements are grouped by coordinates rounded to three
        decimals; groups are shuffled and each contributes an even share
        until the limit is reached.
        """
        limit = self._page_limit(limit, self.config.diverse_limit)
        if limit < 1:
            raise InvalidArgumentError("limit must be at least 1", parameter="limit")

        groups: "OrderedDict[str, List[Record]]" = OrderedDict()
        located = 0
        for m in self.store.load("measurements"):
            coordinates = self._locations.coordinates(m.get("location"))
            if coordinates is None:
                continue
            located += 1
            key = f"{coordinates[0]:.3f},{coordinates[1]:.3f}"
            groups.setdefault(key, []).append(m)

        buckets = list(groups.values())
        self.rng.shuffle(buckets)

        data: List[Record] = []
        if buckets:
            share = max(1, limit // len(buckets))
            for bucket in buckets:
                if len(data) >= limit:
                    break
                data.extend(bucket[:min(share, limit - len(data))])

        return QueryResult(
            data=data,
            metadata={"totalCount": located, "locationsCount": len(buckets)}
        )

    # Helpers

    def _bounding_box(self, north_east: Optional[str], south_west: Optional[str]) -> Optional[BoundingBox]:
        if north_east is None and south_west is None:
            return None
        if north_east is None or south_west is None:
            raise InvalidArgumentError("northEast and southWest must be given together", parameter="bounds")
        try:
            return self._locations.parse_bounding_box(north_east, south_west)
        except ValueError as e:
            raise InvalidArgumentError(str(e), parameter="bounds")

    def _check_date_range(self, start: Any, end: Any) -> None:
        result = DateRangeValidator().validate(start, end)
        if not result.is_valid:
            raise InvalidArgumentError(result.error_message, parameter=result.errors[0].field_name)


def _validation_message(error: PydanticValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc']) or 'payload'}: {detail['msg']}"
        for detail in error.errors()
    )
