"""
Synthetic data generation for demos and tests.

This module builds experiments for every protocol, attaches a CO2 and a
temperature sensor to each experiment, and fills realistic time series
(daily CO2 cycle, seasonal and daily temperature cycle) going back from the
current time. All randomness flows through one random.Random so a seed
reproduces the same data set.
"""

import logging
import math
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import GeneratorConfig, get_config
from ..logging_config import log_generation_progress, log_performance_metrics
from ..models.entities import ExperimentModel, SensorDeviceModel
from ..storage.json_store import JSONStore, Record
from .locales import COUNTRIES, DEFAULT_CATEGORY, STUDENT_GROUPS, TRANSLATIONS

logger = logging.getLogger(__name__)

SENSOR_KINDS = (
    {"sensorType": "co2", "unit": "ppm", "label": "CO2 sensor"},
    {"sensorType": "temperature", "unit": "°C", "label": "Temperature sensor"},
)

GENERATED_STATUSES = ("planned", "active", "completed")


@dataclass
class GenerationReport:
    """Summary of one generation run."""
    experiments: int = 0
    sensors: int = 0
    measurements: int = 0
    seed: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    phases: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "experiments": self.experiments,
            "sensors": self.sensors,
            "measurements": self.measurements,
            "seed": self.seed,
            "phases": self.phases,
            "duration_seconds": self.duration_seconds,
        }


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class DataGenerator:
    """
    Generator for experiments, sensor devices and measurements.

    Args:
        config: Generation settings (defaults to the global configuration)
        rng: Random source; seeded from config.seed when omitted
        clock: Returns the current time; measurements end at this instant
    """

    def __init__(self, config: Optional[GeneratorConfig] = None, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config or get_config().generator
        self.rng = rng or random.Random(self.config.seed)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)

    def _experiment_id(self, now: datetime, index: int) -> str:
        suffix = "".join(self.rng.choices(string.ascii_lowercase + string.digits, k=9))
        return f"exp_{int(now.timestamp() * 1000) + index}_{suffix}"

    def generate_experiments(self, protocols: Sequence[Record]) -> List[Record]:
        """Create experiments_per_protocol experiments for each protocol."""
        now = self.clock()
        start_date = now - timedelta(days=self.config.days)
        experiments = []

        for protocol in protocols:
            category = protocol.get("category") or DEFAULT_CATEGORY
            for _ in range(self.config.experiments_per_protocol):
                country = COUNTRIES[self.rng.choice(sorted(COUNTRIES))]
                city = self.rng.choice(country["cities"])
                school = self.rng.choice(city["schools"])
                language = country["language"]
                texts = TRANSLATIONS[language]

                hypotheses = texts["hypotheses"].get(category, texts["hypotheses"][DEFAULT_CATEGORY])
                methodologies = texts["methodologies"].get(category, texts["methodologies"][DEFAULT_CATEGORY])
                name = protocol.get("name", protocol.get("id"))

                experiment = ExperimentModel(
                    id=self._experiment_id(now, len(experiments)),
                    title=texts["title"].format(protocol=name, school=school),
                    description=texts["description"].format(protocol=name, school=school),
                    protocol=protocol.get("id"),
                    student_name=self.rng.choice(country["students"]),
                    student_group=self.rng.choice(STUDENT_GROUPS),
                    school=f"{school}, {city['name']}",
                    city=city["name"],
                    language=language,
                    start_date=start_date,
                    created_at=start_date,
                    expected_sensors=[kind["sensorType"] for kind in SENSOR_KINDS],
                    hypothesis=self.rng.choice(hypotheses),
                    methodology=self.rng.choice(methodologies),
                    tags=[category.lower()],
                    status=self.rng.choice(GENERATED_STATUSES),
                )
                experiments.append(experiment.to_record())

        return experiments

    def generate_devices(self, experiments: Sequence[Record]) -> List[Record]:
        """One CO2 and one temperature sensor per experiment, placed near its city."""
        now = self.clock()
        coordinates = {
            city["name"]: city["coordinates"]
            for country in COUNTRIES.values()
            for city in country["cities"]
        }
        devices = []

        for index, experiment in enumerate(experiments):
            latitude, longitude = coordinates.get(experiment.get("city"), (0.0, 0.0))
            location = {
                "latitude": round(latitude + self.rng.uniform(-0.02, 0.02), 6),
                "longitude": round(longitude + self.rng.uniform(-0.02, 0.02), 6),
            }
            for kind in SENSOR_KINDS:
                device_id = f"sens-{index + 1:03d}-{kind['sensorType']}"
                device = SensorDeviceModel(
                    id=device_id,
                    name=f"{kind['label']} - {experiment.get('school')}",
                    sensor_type=kind["sensorType"],
                    experiment_id=experiment["id"],
                    unit=kind["unit"],
                    location=location,
                    last_seen=now,
                    metadata={
                        "deviceId": device_id,
                        "studentName": experiment.get("studentName"),
                        "school": experiment.get("school"),
                    },
                )
                devices.append(device.to_record())

        return devices

    def co2_value(self, moment: datetime) -> float:
        """CO2 in ppm: higher and noisier during the day."""
        if 6 <= moment.hour <= 20:
            daily = 200 + self.rng.random() * 400
        else:
            daily = 50 + self.rng.random() * 100
        noise = (self.rng.random() - 0.5) * 100
        return float(round(400 + daily + noise))

    def temperature_value(self, moment: datetime) -> float:
        """Temperature in °C: seasonal sine plus a daily sine plus noise."""
        day_of_year = moment.timetuple().tm_yday
        seasonal = 15 + 10 * math.sin((day_of_year - 80) * 2 * math.pi / 365)
        daily = 3 * math.sin((moment.hour - 6) * math.pi / 12)
        noise = (self.rng.random() - 0.5) * 2
        return round(seasonal + daily + noise, 1)

    @staticmethod
    def quality(index: int) -> float:
        """Reading quality decays slowly with age down to a 0.85 floor."""
        return round(max(0.85, 0.98 - index * 0.0001), 2)

    def generate_measurements(self, experiments: Sequence[Record], devices: Sequence[Record]) -> List[Record]:
        """Readings every interval_hours over the configured number of days, newest first."""
        now = self.clock().replace(minute=0, second=0, microsecond=0)
        points = (self.config.days * 24) // self.config.interval_hours
        by_id = {experiment["id"]: experiment for experiment in experiments}
        measurements = []

        for device in devices:
            experiment = by_id.get(device.get("experimentId"), {})
            value_of = self.co2_value if device["sensorType"] == "co2" else self.temperature_value

            for i in range(points):
                moment = now - timedelta(hours=i * self.config.interval_hours)
                measurements.append({
                    "sensorId": device["id"],
                    "experimentId": device.get("experimentId"),
                    "studentName": experiment.get("studentName"),
                    "sensorType": device["sensorType"],
                    "value": value_of(moment),
                    "unit": device.get("unit", ""),
                    "timestamp": _iso(moment),
                    "quality": self.quality(i),
                    "location": device.get("location"),
                    "notes": "",
                })

        return measurements

    def generate(self, protocols: Sequence[Record]) -> Dict[str, List[Record]]:
        """Build experiments, sensors and measurements for the given protocols."""
        experiments = self.generate_experiments(protocols)
        log_generation_progress(self.logger, "experiments", {"count": len(experiments)})

        sensors = self.generate_devices(experiments)
        log_generation_progress(self.logger, "sensors", {"count": len(sensors)})

        measurements = self.generate_measurements(experiments, sensors)
        log_generation_progress(self.logger, "measurements", {"count": len(measurements)})

        return {"experiments": experiments, "sensors": sensors, "measurements": measurements}

    def write(self, store: JSONStore, protocols: Optional[Sequence[Record]] = None) -> GenerationReport:
        """
        Regenerate and persist experiments, sensors and measurements.

        Clusters and protocols are left untouched; protocols are read from
        the store when not given.
        """
        report = GenerationReport(seed=self.config.seed, start_time=datetime.now())
        started = time.time()

        if protocols is None:
            protocols = store.load("protocols")
        if not protocols:
            self.logger.warning("No protocols available; generated collections will be empty")

        collections = self.generate(protocols)
        for kind, records in collections.items():
            store.replace(kind, records)
            report.phases.append(kind)

        report.experiments = len(collections["experiments"])
        report.sensors = len(collections["sensors"])
        report.measurements = len(collections["measurements"])
        report.end_time = datetime.now()

        log_performance_metrics(self.logger, "generate_data", time.time() - started, **report.to_dict())
        return report
