"""
Measurement export and import in JSON and CSV formats.

CSV rows use one column per measurement field, with the location mapping
flattened into latitude and longitude columns. The same layout is accepted
when students upload a CSV file of readings.
"""

import csv
import json
import logging
from dataclasses import dataclass
from enum import Enum
from io import StringIO
from typing import Any, Dict, List, Optional, Sequence

from ..errors import DataError, InvalidArgumentError, create_error_context

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""
    JSON = "json"
    CSV = "csv"


MEASUREMENT_COLUMNS = [
    "timestamp", "experimentId", "studentName", "sensorId", "sensorType",
    "value", "unit", "quality", "latitude", "longitude", "notes",
]

REQUIRED_CSV_COLUMNS = ("experimentId", "studentName", "sensorType", "value")

_NUMERIC_COLUMNS = ("value", "quality", "latitude", "longitude")


@dataclass
class ExportOptions:
    """Configuration options for data export."""
    format: ExportFormat
    include_location: bool = True
    include_notes: bool = True
    pretty_json: bool = True
    csv_delimiter: str = ","


def parse_export_format(value: str) -> ExportFormat:
    """
    Resolve a format name such as "csv" or "JSON".

    Raises:
        InvalidArgumentError: For unsupported formats
    """
    try:
        return ExportFormat(str(value).lower())
    except ValueError:
        supported = ", ".join(f.value for f in ExportFormat)
        raise InvalidArgumentError(f"Unsupported export format '{value}'. Expected one of: {supported}",
                                   parameter="format")


class DataExporter:
    """
    Exporter for sensor measurements.

    Produces JSON arrays or flat CSV tables and parses uploaded CSV files
    back into measurement payloads.
    """

    def __init__(self):
        """Initialize the data exporter."""
        self.logger = logging.getLogger(__name__)

    def export_measurements(
        self,
        measurements: Sequence[Dict[str, Any]],
        format: ExportFormat,
        options: Optional[ExportOptions] = None
    ) -> str:
        """
        Export measurements in the specified format.

        Args:
            measurements: Measurement records to export
            format: Export format (JSON or CSV)
            options: Export configuration options

        Returns:
            Formatted string containing exported data
        """
        if options is None:
            options = ExportOptions(format=format)

        self.logger.info(f"Exporting {len(measurements)} measurements in {format.value} format")

        if format == ExportFormat.JSON:
            return self._export_json(measurements, options)
        elif format == ExportFormat.CSV:
            return self._export_csv(measurements, options)
        else:
            raise ValueError(f"Unsupported export format: {format}")

    def validate_export_format(self, data: str, format: ExportFormat) -> bool:
        """
        Validate that exported data parses back in the given format.

        Args:
            data: Exported data string to validate
            format: Expected format

        Returns:
            True if data is valid for the format
        """
        if format == ExportFormat.JSON:
            return self._validate_json_format(data)
        elif format == ExportFormat.CSV:
            return self._validate_csv_format(data)
        return False

    def _columns(self, options: ExportOptions) -> List[str]:
        columns = list(MEASUREMENT_COLUMNS)
        if not options.include_location:
            columns = [c for c in columns if c not in ("latitude", "longitude")]
        if not options.include_notes:
            columns.remove("notes")
        return columns

    def _export_json(self, measurements: Sequence[Dict[str, Any]], options: ExportOptions) -> str:
        """Export measurements as a JSON array."""
        export_data = []
        for measurement in measurements:
            entry = dict(measurement)
            if not options.include_location:
                entry.pop("location", None)
            if not options.include_notes:
                entry.pop("notes", None)
            export_data.append(entry)

        if options.pretty_json:
            return json.dumps(export_data, indent=2, ensure_ascii=False)
        return json.dumps(export_data, ensure_ascii=False)

    def _export_csv(self, measurements: Sequence[Dict[str, Any]], options: ExportOptions) -> str:
        """Export measurements as a CSV table with a header row."""
        output = StringIO()
        writer = csv.DictWriter(
            output,
            fieldnames=self._columns(options),
            delimiter=options.csv_delimiter,
            extrasaction='ignore'
        )
        writer.writeheader()

        for measurement in measurements:
            row = {column: measurement.get(column, '') for column in writer.fieldnames}
            location = measurement.get("location")
            if options.include_location:
                if isinstance(location, dict):
                    row["latitude"] = location.get("latitude", '')
                    row["longitude"] = location.get("longitude", '')
                else:
                    row["latitude"] = row["longitude"] = ''
            writer.writerow({k: ('' if v is None else v) for k, v in row.items()})

        return output.getvalue()

    def parse_measurements_csv(self, text: str, delimiter: str = ",") -> List[Dict[str, Any]]:
        """
        Parse an uploaded CSV file into measurement payloads.

        The header row names the columns; experimentId, studentName,
        sensorType and value are required. Empty cells are omitted and
        latitude/longitude are folded back into a location mapping.

        Raises:
            DataError: If the header or a row is malformed
        """
        context = create_error_context("parse_measurements_csv", "measurements")
        reader = csv.DictReader(StringIO(text.lstrip("\ufeff")), delimiter=delimiter)

        if not reader.fieldnames:
            raise DataError("CSV file is empty", context=context)

        header = [name.strip() for name in reader.fieldnames]
        missing = [column for column in REQUIRED_CSV_COLUMNS if column not in header]
        if missing:
            raise DataError(f"CSV file is missing required columns: {', '.join(missing)}", context=context)
        reader.fieldnames = header

        payloads = []
        for line_number, row in enumerate(reader, start=2):
            if None in row:
                raise DataError(f"CSV line {line_number} has more cells than the header", context=context)
            try:
                payloads.append(self._row_to_payload(row))
            except ValueError as e:
                raise DataError(f"CSV line {line_number}: {e}", context=context, original_exception=e)

        self.logger.info(f"Parsed {len(payloads)} measurements from CSV upload")
        return payloads

    def _row_to_payload(self, row: Dict[str, Optional[str]]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for column, raw in row.items():
            cell = (raw or "").strip()
            if not cell:
                continue
            if column in _NUMERIC_COLUMNS:
                try:
                    payload[column] = float(cell)
                except ValueError:
                    raise ValueError(f"column {column} must be numeric, got '{cell}'")
            else:
                payload[column] = cell

        latitude = payload.pop("latitude", None)
        longitude = payload.pop("longitude", None)
        if latitude is not None and longitude is not None:
            payload["location"] = {"latitude": latitude, "longitude": longitude}

        return payload

    def _validate_json_format(self, data: str) -> bool:
        """Validate JSON format."""
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return False
        return isinstance(parsed, list) and all(isinstance(item, dict) for item in parsed)

    def _validate_csv_format(self, data: str) -> bool:
        """Validate CSV format."""
        if not data.strip():
            return True

        try:
            rows = list(csv.reader(StringIO(data)))
        except csv.Error:
            return False

        header_length = len(rows[0])
        return all(len(row) == header_length for row in rows[1:])
