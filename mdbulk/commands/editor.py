"""Markdown field commands: extract, update and verify."""
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO, Union

from ..editor.batch import extract_path, update_records, verify_records
from ..editor.fields import DEFAULT_FIELDS, FieldDescriptor
from ..editor.tables import load_csv_table, load_records, write_records
from ..errors import PreconditionError

logger = logging.getLogger(__name__)


def extract(
    path: Union[str, Path],
    output: str = "-",
    as_json: bool = False,
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
    stdout: Optional[TextIO] = None,
) -> List[Dict[str, Any]]:
    """
    Extract fields from a document or a directory tree and write the table.

    Args:
        path: Markdown file or directory
        output: Output file, ``-`` for standard output
        as_json: Write a JSON array instead of a tab-delimited table
        fields: Field descriptors to extract

    Returns:
        The extracted rows
    """
    path = Path(path)
    if not path.exists():
        raise PreconditionError(f"path does not exist: {path}")

    rows = extract_path(path, fields)
    if not rows:
        return rows

    if output == "-":
        write_records(rows, stdout or sys.stdout, as_json=as_json)
    else:
        with open(output, "w", encoding="utf-8", newline="") as out:
            write_records(rows, out, as_json=as_json)
        logger.info(f"Wrote {len(rows)} row(s) to {output}")
    return rows


def update(
    input_path: Union[str, Path],
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
    in_place: bool = False,
) -> List[Path]:
    """Apply every record of an update table to its document."""
    records = load_records(input_path)
    if not records:
        logger.warning(f"No records in {input_path}")
        return []
    return update_records(records, fields, in_place=in_place)


def verify(
    csv_path: Union[str, Path],
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
) -> List[Dict[str, Any]]:
    """Load a CSV table and annotate each row with the documents' current values."""
    return verify_records(load_csv_table(csv_path), fields)
