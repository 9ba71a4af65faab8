"""Batch extraction, update and verification of document fields."""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from ..errors import MalformedInputError
from .document import MarkdownDocument
from .fields import DEFAULT_FIELDS, FieldDescriptor, format_value

logger = logging.getLogger(__name__)

ORIGINAL_SUFFIX = "_original"
UPDATED_SUFFIX = "-new.md"


def collect_documents(path: Union[str, Path]) -> List[Path]:
    """
    Files to process for ``path``.

    A directory is walked recursively and every non-directory entry is
    returned, sorted. A file is returned as is.
    """
    path = Path(path)
    if path.is_dir():
        return sorted(item for item in path.rglob("*") if not item.is_dir())
    return [path]


def extract_document(document: MarkdownDocument, fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS) -> Dict[str, List[str]]:
    return {cfg.field: cfg.processor.extract(document.tree) for cfg in fields}


def extract_file(path: Union[str, Path], fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS) -> Dict[str, Any]:
    """Record ``{path, <field>: [...]}`` for one document; path is relative to the cwd."""
    document = MarkdownDocument.from_file(path)
    record: Dict[str, Any] = {"path": os.path.relpath(path)}
    record.update(extract_document(document, fields))
    logger.debug(f"Extracted {record}")
    return record


def extract_path(path: Union[str, Path], fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS) -> List[Dict[str, Any]]:
    """Extract every document below ``path`` (or ``path`` itself)."""
    return [extract_file(doc, fields) for doc in collect_documents(path)]


def _record_path(record: Mapping[str, Any]) -> Path:
    value = record.get("path")
    if not value:
        raise MalformedInputError(f"record has no path: {dict(record)}")
    return Path(value)


def update_file(
    record: Mapping[str, Any],
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
    in_place: bool = False,
) -> Path:
    """
    Rewrite the fields of the document named by ``record["path"]``.

    The result goes to ``<path>-new.md`` unless ``in_place`` is set.

    Returns:
        Path of the written document
    """
    return _write_update(*_render_update(record, fields, in_place))


def _render_update(
    record: Mapping[str, Any],
    fields: Sequence[FieldDescriptor],
    in_place: bool,
) -> Tuple[Path, str]:
    source = _record_path(record)
    document = MarkdownDocument.from_file(source)
    for cfg in fields:
        cfg.processor.update(document.tree, cfg, record)
    target = source if in_place else source.with_name(source.name + UPDATED_SUFFIX)
    return target, document.render()


def _write_update(target: Path, text: str) -> Path:
    target.write_text(text, encoding="utf-8")
    logger.info(f"updated {target}")
    return target


def update_records(
    records: Sequence[Mapping[str, Any]],
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
    in_place: bool = False,
) -> List[Path]:
    """
    Apply every record.

    Every document is read and rewritten in memory first; nothing is written
    unless all records succeed.
    """
    for record in records:
        _record_path(record)
    rendered = [_render_update(record, fields, in_place) for record in records]
    return [_write_update(target, text) for target, text in rendered]


def verify_records(
    records: Sequence[Mapping[str, Any]],
    fields: Sequence[FieldDescriptor] = DEFAULT_FIELDS,
) -> List[Dict[str, Any]]:
    """
    Compare table rows with the documents they target.

    Rows are sorted by path and get a ``<field>_original`` column holding the
    document's current value for every field present in the row.
    """
    rows = sorted((dict(record) for record in records), key=lambda row: str(row.get("path") or ""))
    for row in rows:
        current = extract_document(MarkdownDocument.from_file(_record_path(row)), fields)
        for cfg in fields:
            if cfg.field in row:
                row[cfg.field + ORIGINAL_SUFFIX] = format_value(current[cfg.field])
    return rows


def is_modified(row: Mapping[str, Any]) -> bool:
    """True if any column differs from its ``_original`` counterpart."""
    for key in row:
        original = key + ORIGINAL_SUFFIX
        if original in row and format_value(row[original]) != format_value(row[key]):
            return True
    return False
