"""Conversion of application data into spreadsheet rows.

Supported collection shapes (``convert_data``):
    None or empty          -> no rows
    Mapping                -> its values, in order
    other iterables        -> iterated as-is (lists, tuples, generators, ...)

Supported row shapes (``convert_row``):
    None                   -> empty row
    Mapping                -> kept as a mapping
    namedtuple             -> ``_asdict()``
    dataclass instance     -> ``dataclasses.asdict``
    pydantic model         -> ``model_dump()``
    other iterables        -> kept as a sequence
    object with __dict__   -> its public attributes

Strings, bytes and numbers are never treated as collections or rows.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

from google_connect.sheets.exceptions import UnknownDataShapeError

Row = list[str]

_SCALARS = (str, bytes, bytearray, int, float, complex, bool)


def convert_data(data: Any) -> Iterable[Any]:
    """Turn a collection of rows into something iterable.

    Raises:
        UnknownDataShapeError: For scalars and non-iterable objects.
    """
    if data is None:
        return []

    if isinstance(data, _SCALARS):
        raise UnknownDataShapeError(data, f"Cannot export {type(data).__name__} as rows")

    if isinstance(data, Mapping):
        return list(data.values())

    if isinstance(data, Iterable):
        return data

    raise UnknownDataShapeError(data, f"Cannot export {type(data).__name__} as rows")


def convert_row(row: Any) -> Mapping[str, Any] | Iterable[Any]:
    """Turn a single row into a mapping or a sequence of values.

    Raises:
        UnknownDataShapeError: For scalars and objects without attributes.
    """
    if row is None:
        return {}

    if isinstance(row, _SCALARS):
        raise UnknownDataShapeError(row, f"Unknown row format: {type(row).__name__}")

    if isinstance(row, Mapping):
        return row

    # namedtuple
    if isinstance(row, tuple) and hasattr(row, "_asdict"):
        return row._asdict()

    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        return dataclasses.asdict(row)

    # pydantic v2 models
    if callable(getattr(row, "model_dump", None)):
        return row.model_dump()

    if isinstance(row, Iterable):
        return row

    if hasattr(row, "__dict__"):
        return {key: value for key, value in vars(row).items() if not key.startswith("_")}

    raise UnknownDataShapeError(row, f"Unknown row format: {type(row).__name__}")


def cell_value(value: Any) -> str:
    """Render a value as cell text."""
    return "" if value is None else str(value)


def create_row(row: Any, fields: Mapping[str, str] | None = None) -> Row:
    """Build the list of cell strings for one row.

    Args:
        row: Row data in any supported shape.
        fields: Optional mapping of field name to column title. When given,
            only these fields are output, in the mapping's order.

    Returns:
        Cell values as strings.

    Raises:
        UnknownDataShapeError: If fields are given and the row has no
            field names, or the row shape is not supported.
    """
    data = convert_row(row)

    if fields:
        if not isinstance(data, Mapping):
            raise UnknownDataShapeError(
                row, "Rows must be mappings or objects when fields are given"
            )
        return [cell_value(data.get(field)) for field in fields]

    if isinstance(data, Mapping):
        return [cell_value(value) for value in data.values()]

    return [cell_value(value) for value in data]


def header_row(fields: Mapping[str, str]) -> Row:
    """Build the title row from a fields mapping."""
    return create_row(fields, fields)
