"""
Collection query engine.

Pure functions that filter, search, enrich, sort and paginate in-memory
record collections. No function mutates its input: every call builds a new
list, and enrichment copies records before attaching projections. Result
order always equals input order unless `sort_by_field` is applied.

Absent filter values (None, or an empty search string) are no-ops, never
empty results. The only failure raised here is InvalidArgumentError, for a
missing mandatory search query or an unusable parameter.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidArgumentError
from ..models.validation import BoundingBox, LocationValidator, parse_timestamp

Record = Mapping[str, Any]
Predicate = Callable[[Sequence[Record]], List[Record]]

DEFAULT_PROJECTION = ("id", "name", "title")

_location_validator = LocationValidator()


def filter_by_exact_field(records: Sequence[Record], field: str, value: Any = None) -> List[Record]:
    """Keep records where record[field] == value. A None value keeps everything."""
    if value is None:
        return list(records)
    return [record for record in records if record.get(field) == value]


def filter_excluding(records: Sequence[Record], field: str, value: Any = None) -> List[Record]:
    """Drop records where record[field] == value. A None value keeps everything."""
    if value is None:
        return list(records)
    return [record for record in records if record.get(field) != value]


def filter_by_membership(records: Sequence[Record], field: str, candidate_id: Any = None,
                         list_field: Optional[str] = None) -> List[Record]:
    """
    Keep records referencing candidate_id as primary or secondary reference.

    A record matches when record[field] == candidate_id, or when candidate_id
    is an element of record[list_field]. Missing or null lists count as empty.
    """
    if candidate_id is None:
        return list(records)

    def matches(record: Record) -> bool:
        if record.get(field) == candidate_id:
            return True
        if list_field is None:
            return False
        values = record.get(list_field)
        return isinstance(values, (list, tuple)) and candidate_id in values

    return [record for record in records if matches(record)]


def filter_by_substring(records: Sequence[Record], fields: Iterable[str], query: Optional[str] = None,
                        array_fields: Iterable[str] = ()) -> List[Record]:
    """
    Case-insensitive substring match across text fields and string arrays.

    A record is kept when any of `fields`, or any string element of any of
    `array_fields`, contains the lowercased query. Fields that are missing,
    null or not strings are skipped; a record without a keyword array stays
    eligible through its other fields.
    """
    if not query:
        return list(records)

    needle = query.lower()
    fields = tuple(fields)
    array_fields = tuple(array_fields)

    def matches(record: Record) -> bool:
        for name in fields:
            value = record.get(name)
            if isinstance(value, str) and needle in value.lower():
                return True
        for name in array_fields:
            values = record.get(name)
            if not isinstance(values, (list, tuple)):
                continue
            if any(isinstance(item, str) and needle in item.lower() for item in values):
                return True
        return False

    return [record for record in records if matches(record)]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def filter_by_range(records: Sequence[Record], field: str, minimum: Optional[float] = None,
                    maximum: Optional[float] = None) -> List[Record]:
    """Keep records whose numeric field lies within the inclusive bounds."""
    if minimum is None and maximum is None:
        return list(records)

    def matches(record: Record) -> bool:
        value = record.get(field)
        if not _is_number(value):
            return False
        if minimum is not None and value < minimum:
            return False
        if maximum is not None and value > maximum:
            return False
        return True

    return [record for record in records if matches(record)]


def filter_by_date_range(records: Sequence[Record], field: str, start: Any = None,
                         end: Any = None) -> List[Record]:
    """
    Keep records whose timestamp field lies within the inclusive bounds.

    Bounds may be datetimes or ISO-8601 strings. Records whose field is
    missing or unparsable are dropped while a bound is active.

    Raises:
        InvalidArgumentError: If a bound cannot be parsed
    """
    if start is None and end is None:
        return list(records)

    lower = _parse_bound(start, "startDate")
    upper = _parse_bound(end, "endDate")

    def matches(record: Record) -> bool:
        timestamp = parse_timestamp(record.get(field))
        if timestamp is None:
            return False
        if lower is not None and timestamp < lower:
            return False
        if upper is not None and timestamp > upper:
            return False
        return True

    return [record for record in records if matches(record)]


def _parse_bound(value: Any, name: str):
    if value is None:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise InvalidArgumentError(f"{name} must be an ISO-8601 date", parameter=name)
    return parsed


def _is_present(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def filter_by_presence(records: Sequence[Record], field: str, present: Optional[bool] = None) -> List[Record]:
    """Keep records where the field is set (present=True) or unset (present=False)."""
    if present is None:
        return list(records)
    return [record for record in records if _is_present(record.get(field)) == present]


def filter_by_bounding_box(records: Sequence[Record], field: str,
                           box: Optional[BoundingBox] = None) -> List[Record]:
    """Keep records whose location mapping lies inside the box."""
    if box is None:
        return list(records)

    def matches(record: Record) -> bool:
        coordinates = _location_validator.coordinates(record.get(field))
        return coordinates is not None and box.contains(*coordinates)

    return [record for record in records if matches(record)]


def compose_filters(records: Sequence[Record], *predicates: Predicate) -> List[Record]:
    """Apply predicates left to right; each stage feeds the next."""
    result = list(records)
    for predicate in predicates:
        result = predicate(result)
    return result


def search(records: Sequence[Record], query: Optional[str], fields: Iterable[str],
           array_fields: Iterable[str] = (), extra_predicates: Iterable[Predicate] = ()) -> List[Record]:
    """
    Substring search with a mandatory query, composed with extra filters.

    Raises:
        InvalidArgumentError: If the query is missing, empty or whitespace-only
    """
    text = str(query).strip() if query is not None else ""
    if not text:
        raise InvalidArgumentError('Search query parameter "q" is required', parameter="q")

    return compose_filters(
        records,
        Substring(tuple(fields), text, tuple(array_fields)),
        *extra_predicates
    )


def project(record: Optional[Record], fields: Iterable[str] = DEFAULT_PROJECTION) -> Optional[Dict[str, Any]]:
    """Trimmed copy of a record holding only the given fields."""
    if record is None:
        return None
    return {name: record.get(name) for name in fields}


def index_by(records: Iterable[Record], key: str = "id") -> Dict[Hashable, Record]:
    """Map key values to records; the first record with a given key wins."""
    index: Dict[Hashable, Record] = {}
    for record in records:
        value = record.get(key)
        if isinstance(value, Hashable) and value is not None:
            index.setdefault(value, record)
    return index


def enrich_with_reference(records: Sequence[Record], reference_table: Sequence[Record],
                          reference_key_field: str, ref_fields: Iterable[str] = DEFAULT_PROJECTION,
                          result_key: Optional[str] = None, table_order: bool = False) -> List[Dict[str, Any]]:
    """
    Attach trimmed projections of referenced records.

    The projection is stored under `result_key` (default
    "<reference_key_field>Data"). A scalar reference yields a projection or
    None when the id has no match. A list reference yields a list of
    projections omitting ids with no match, in list order, or in reference
    table order (each match once) when `table_order` is set.
    """
    index = index_by(reference_table)
    key = result_key or f"{reference_key_field}Data"
    ref_fields = tuple(ref_fields)

    enriched = []
    for record in records:
        reference = record.get(reference_key_field)
        if isinstance(reference, (list, tuple)):
            wanted = [ref_id for ref_id in reference if isinstance(ref_id, Hashable) and ref_id in index]
            if table_order:
                wanted_ids = set(wanted)
                wanted = [ref_id for ref_id in index if ref_id in wanted_ids]
            projection = [project(index[ref_id], ref_fields) for ref_id in wanted]
        elif isinstance(reference, Hashable) and reference in index:
            projection = project(index[reference], ref_fields)
        else:
            projection = None
        enriched.append({**record, key: projection})

    return enriched


def sort_by_field(records: Sequence[Record], field: str, descending: bool = False,
                  key: Optional[Callable[[Any], Any]] = None) -> List[Record]:
    """
    Stable sort on one field.

    `key` converts raw values before comparison; records whose value is
    missing, or converts to None, go last in either direction.
    """
    convert = key or (lambda value: value)
    keyed: List[Tuple[Any, Record]] = []
    missing: List[Record] = []

    for record in records:
        value = record.get(field)
        sort_key = convert(value) if value is not None else None
        if sort_key is None:
            missing.append(record)
        else:
            keyed.append((sort_key, record))

    keyed.sort(key=lambda item: item[0], reverse=descending)
    return [record for _, record in keyed] + missing


def sort_by_timestamp(records: Sequence[Record], field: str = "timestamp",
                      descending: bool = True) -> List[Record]:
    """Order records by an ISO-8601 field, most recent first by default."""
    return sort_by_field(records, field, descending=descending, key=parse_timestamp)


@dataclass
class Page:
    """One page of a record collection."""
    items: List[Record]
    total_count: int
    total_pages: int
    current_page: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def paginate(records: Sequence[Record], page: int = 1, limit: int = 50) -> Page:
    """
    Slice a collection into a page.

    Raises:
        InvalidArgumentError: If page or limit is below 1
    """
    if page < 1:
        raise InvalidArgumentError("page must be at least 1", parameter="page")
    if limit < 1:
        raise InvalidArgumentError("limit must be at least 1", parameter="limit")

    total = len(records)
    start = (page - 1) * limit
    return Page(
        items=list(records[start:start + limit]),
        total_count=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
        limit=limit,
    )


class Filter:
    """
    A named, reusable filter stage.

    Subclasses are callable on a record list and report the value they
    apply so result envelopes can echo active filters.
    """

    name: Optional[str] = None

    @property
    def label(self) -> str:
        raise NotImplementedError

    @property
    def applied_value(self) -> Any:
        raise NotImplementedError

    @property
    def active(self) -> bool:
        return self.applied_value is not None

    def __call__(self, records: Sequence[Record]) -> List[Record]:
        raise NotImplementedError


@dataclass(frozen=True)
class ExactMatch(Filter):
    field: str
    value: Any = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.field

    @property
    def applied_value(self) -> Any:
        return self.value

    def __call__(self, records):
        return filter_by_exact_field(records, self.field, self.value)


@dataclass(frozen=True)
class Excluding(Filter):
    field: str
    value: Any = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or f"exclude_{self.field}"

    @property
    def applied_value(self) -> Any:
        return self.value

    def __call__(self, records):
        return filter_excluding(records, self.field, self.value)


@dataclass(frozen=True)
class Membership(Filter):
    field: str
    value: Any = None
    list_field: Optional[str] = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.field

    @property
    def applied_value(self) -> Any:
        return self.value

    def __call__(self, records):
        return filter_by_membership(records, self.field, self.value, self.list_field)


@dataclass(frozen=True)
class Substring(Filter):
    fields: Tuple[str, ...]
    query: Optional[str] = None
    array_fields: Tuple[str, ...] = ()
    name: Optional[str] = "search"

    @property
    def label(self) -> str:
        return self.name or "search"

    @property
    def applied_value(self) -> Any:
        return self.query or None

    def __call__(self, records):
        return filter_by_substring(records, self.fields, self.query, self.array_fields)


@dataclass(frozen=True)
class Range(Filter):
    field: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.field

    @property
    def applied_value(self) -> Any:
        if self.minimum is None and self.maximum is None:
            return None
        return {"min": self.minimum, "max": self.maximum}

    def __call__(self, records):
        return filter_by_range(records, self.field, self.minimum, self.maximum)


@dataclass(frozen=True)
class DateRange(Filter):
    field: str
    start: Any = None
    end: Any = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.field

    @property
    def applied_value(self) -> Any:
        if self.start is None and self.end is None:
            return None
        return {"from": _iso(self.start), "to": _iso(self.end)}

    def __call__(self, records):
        return filter_by_date_range(records, self.field, self.start, self.end)


@dataclass(frozen=True)
class Presence(Filter):
    field: str
    present: Optional[bool] = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or f"has_{self.field}"

    @property
    def applied_value(self) -> Any:
        return self.present

    def __call__(self, records):
        return filter_by_presence(records, self.field, self.present)


@dataclass(frozen=True)
class WithinBounds(Filter):
    field: str
    box: Optional[BoundingBox] = None
    name: Optional[str] = "boundingBox"

    @property
    def label(self) -> str:
        return self.name or self.field

    @property
    def applied_value(self) -> Any:
        if self.box is None:
            return None
        return {
            "northEast": [self.box.north, self.box.east],
            "southWest": [self.box.south, self.box.west],
        }

    def __call__(self, records):
        return filter_by_bounding_box(records, self.field, self.box)


def _iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def describe_filters(filters: Iterable[Filter]) -> Dict[str, Any]:
    """Map each filter label to its applied value (None when inactive)."""
    return {f.label: f.applied_value for f in filters}


@dataclass
class QueryResult:
    """Filtered records plus the filter values that produced them."""
    data: List[Record]
    filters: Dict[str, Any] = field(default_factory=dict)
    page: Optional[Page] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.data)

    def to_envelope(self, filters_key: str = "filters") -> Dict[str, Any]:
        """Response body in the API's success envelope."""
        envelope: Dict[str, Any] = {"success": True, "count": self.count}
        if self.page is not None:
            envelope.update(self.page.to_dict())
        envelope.update(self.metadata)
        envelope["data"] = self.data
        if self.filters:
            envelope[filters_key] = self.filters
        return envelope
