"""PostgreSQL type names to UI field types, and JSON values to driver values."""

import json
import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

PG_TYPE_MAP: dict[str, str] = {
    # Numeric
    "int2": "number",
    "int4": "number",
    "int8": "number",
    "smallint": "number",
    "integer": "number",
    "bigint": "number",
    "decimal": "number",
    "numeric": "number",
    "real": "number",
    "float4": "number",
    "float8": "number",
    "double precision": "number",
    "serial": "number",
    "bigserial": "number",
    "smallserial": "number",
    "oid": "number",
    "money": "currency",
    # Strings
    "char": "text",
    "bpchar": "text",
    "varchar": "text",
    "character varying": "text",
    "character": "text",
    "text": "text",
    "name": "text",
    "citext": "text",
    "interval": "text",
    "xml": "text",
    "inet": "text",
    "cidr": "text",
    "macaddr": "text",
    "macaddr8": "text",
    "point": "text",
    "line": "text",
    "lseg": "text",
    "box": "text",
    "path": "text",
    "polygon": "text",
    "circle": "text",
    "tsvector": "text",
    "tsquery": "text",
    "uuid": "uuid",
    "bool": "boolean",
    "boolean": "boolean",
    # Date/time
    "date": "date",
    "time": "time",
    "timetz": "time",
    "time without time zone": "time",
    "time with time zone": "time",
    "timestamp": "datetime",
    "timestamptz": "datetime",
    "timestamp without time zone": "datetime",
    "timestamp with time zone": "datetime",
    # JSON and ranges
    "json": "json",
    "jsonb": "json",
    "int4range": "json",
    "int8range": "json",
    "numrange": "json",
    "tsrange": "json",
    "tstzrange": "json",
    "daterange": "json",
    "bytea": "binary",
}

_INTEGER_TYPES = {"int2", "int4", "int8", "smallint", "integer", "bigint", "serial", "bigserial", "smallserial", "oid"}
_FLOAT_TYPES = {"float4", "float8", "real", "double precision"}
_DECIMAL_TYPES = {"numeric", "decimal"}
_TIMESTAMP_TYPES = {"timestamp", "timestamptz", "timestamp without time zone", "timestamp with time zone"}
_TIME_TYPES = {"time", "timetz", "time without time zone", "time with time zone"}


def _normalize(pg_type: str) -> str:
    return pg_type.lower().strip()


def map_pg_type_to_field_type(pg_type: str) -> str:
    """
    Map a PostgreSQL type name to the field type used for UI generation.

    Array types (``int4[]``, ``_int4``, ``ARRAY``) map to ``array``;
    parameterised types such as ``varchar(255)`` are looked up by their
    base name; anything unknown is ``text``.
    """
    normalized = _normalize(pg_type)

    if normalized.endswith("[]") or normalized.startswith("_") or normalized.startswith("array"):
        return "array"

    mapped = PG_TYPE_MAP.get(normalized)
    if mapped:
        return mapped

    base = normalized.split("(")[0].strip()
    return PG_TYPE_MAP.get(base, "text")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def coerce_value(value: Any, pg_type: str) -> Any:
    """
    Convert a JSON-decoded value into what asyncpg expects for ``pg_type``.

    Values that cannot be converted are returned unchanged so the database
    reports the type error.
    """
    if value is None:
        return None

    normalized = _normalize(pg_type)
    if normalized.startswith("_") or normalized.endswith("[]"):
        element_type = normalized[1:] if normalized.startswith("_") else normalized[:-2]
        if isinstance(value, list):
            return [coerce_value(item, element_type) for item in value]
        return value

    try:
        if normalized in _INTEGER_TYPES:
            if isinstance(value, bool):
                return int(value)
            if isinstance(value, (int, float, str)):
                return int(value)
        elif normalized in _FLOAT_TYPES:
            if isinstance(value, (int, float, str)) and not isinstance(value, bool):
                return float(value)
        elif normalized in _DECIMAL_TYPES:
            if isinstance(value, (int, float, str)) and not isinstance(value, bool):
                return Decimal(str(value))
        elif normalized in ("bool", "boolean"):
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("true", "t", "yes", "1"):
                    return True
                if lowered in ("false", "f", "no", "0"):
                    return False
            return value
        elif normalized == "uuid":
            if isinstance(value, str):
                return uuid.UUID(value)
        elif normalized == "date":
            if isinstance(value, str):
                return date.fromisoformat(value[:10])
        elif normalized in _TIMESTAMP_TYPES:
            if isinstance(value, str):
                return _parse_datetime(value)
        elif normalized in _TIME_TYPES:
            if isinstance(value, str):
                return time.fromisoformat(value)
        elif normalized in ("json", "jsonb"):
            return json.dumps(value)
        elif map_pg_type_to_field_type(normalized) == "text":
            if not isinstance(value, str):
                return str(value)
    except (ValueError, InvalidOperation):
        return value
    return value
