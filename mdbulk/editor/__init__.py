"""Markdown field extraction and update."""
from .batch import (
    collect_documents,
    extract_file,
    extract_path,
    is_modified,
    update_file,
    update_records,
    verify_records,
)
from .document import MarkdownDocument
from .fields import DEFAULT_FIELDS, FieldDescriptor, FieldSelector, TextProcessor
from .tables import load_csv_table, load_records, parse_records, write_records

__all__ = [
    "collect_documents",
    "extract_file",
    "extract_path",
    "is_modified",
    "update_file",
    "update_records",
    "verify_records",
    "MarkdownDocument",
    "DEFAULT_FIELDS",
    "FieldDescriptor",
    "FieldSelector",
    "TextProcessor",
    "load_csv_table",
    "load_records",
    "parse_records",
    "write_records",
]
