"""Reading and writing the record tables used by extract/update/verify."""
import csv
import io
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Sequence, TextIO, Union

from ..errors import MalformedInputError

logger = logging.getLogger(__name__)

DELIMITER = "\t"

Record = Dict[str, Any]


def _cell(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value)
    return json.dumps(value)


def write_records(rows: Sequence[Record], out: TextIO, as_json: bool = False) -> None:
    """
    Write rows as a JSON array or a tab-delimited table.

    The table header is the key order of the first row; every cell is JSON
    encoded, list values joined with ``", "`` first.
    """
    if not rows:
        return
    if as_json:
        out.write(json.dumps(rows, indent=2))
        return

    keys = list(rows[0].keys())
    out.write(DELIMITER.join(keys))
    out.write("\n")
    for row in rows:
        out.write(DELIMITER.join(_cell(row.get(key)) for key in keys))
        out.write("\n")


def _decode_cell(value: str, line_no: int) -> str:
    if not value.startswith('"'):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"line {line_no}: cannot decode cell {value!r}: {e}") from e


def _parse_json_records(text: str) -> List[Record]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"invalid JSON table: {e}") from e
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise MalformedInputError("JSON table must be an array of objects")
    return data


def _parse_tsv_records(text: str) -> List[Record]:
    lines = [line.strip() for line in text.split("\n")]
    rows = [[cell.strip() for cell in line.split(DELIMITER)] for line in lines if line]
    if not rows:
        return []

    keys = rows[0]
    records: List[Record] = []
    for line_no, row in enumerate(rows[1:], start=2):
        record: Record = {}
        for idx, key in enumerate(keys):
            value = row[idx] if idx < len(row) else ""
            record[key] = _decode_cell(value, line_no)
        records.append(record)
    return records


def parse_records(text: str) -> List[Record]:
    """
    Parse an update table: a JSON array, or a tab-delimited table whose first
    line is the header and whose cells may be JSON-quoted strings.

    Raises:
        MalformedInputError: if the table cannot be decoded
    """
    if text.lstrip().startswith("["):
        return _parse_json_records(text)
    return _parse_tsv_records(text)


def _read_csv(text: str) -> List[Record]:
    try:
        reader = csv.DictReader(io.StringIO(text), restval="")
        return [
            {key: value for key, value in row.items() if key is not None}
            for row in reader
            if any(isinstance(value, str) and value.strip() for value in row.values())
        ]
    except csv.Error as e:
        raise MalformedInputError(f"invalid CSV table: {e}") from e


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"{path} is not UTF-8 text: {e}") from e


def load_records(path: Union[str, Path]) -> List[Record]:
    """Load an update table from a ``.csv``, JSON or tab-delimited file."""
    path = Path(path)
    text = _read_text(path)
    if path.suffix.lower() == ".csv":
        records = _read_csv(text)
    else:
        records = parse_records(text)
    logger.debug(f"Loaded {len(records)} record(s) from {path}")
    return records


def load_csv_table(path: Union[str, Path]) -> List[Record]:
    """
    Load a CSV table, rejecting any other file type.

    Raises:
        MalformedInputError: if the file is not ``text/csv``
    """
    path = Path(path)
    file_type, _ = mimetypes.guess_type(path.name)
    if file_type != "text/csv":
        raise MalformedInputError(f"Only CSV files supported. You provided {file_type or path.suffix or 'unknown'}")
    return _read_csv(_read_text(path))
