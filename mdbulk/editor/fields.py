"""
Field selectors for labelled metadata lines.

A field is located in two stages: a structural query over the syntax tree
yields candidate text nodes, then a regular expression picks the ones that
start with the field label. Group 1 of the pattern is the label prefix, group
2 the comma-separated values.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Pattern, Tuple

from markdown_it.tree import SyntaxTreeNode

logger = logging.getLogger(__name__)

NodeQuery = Callable[[SyntaxTreeNode], Iterable[SyntaxTreeNode]]


def after_last_rule_paragraph_text(tree: SyntaxTreeNode) -> Iterator[SyntaxTreeNode]:
    """
    Text nodes of the paragraphs following the last thematic break.

    Applied to every container in the tree, so a block quote with its own
    rule is searched as well. Nodes come out in document order.

    markdown-it ends a text node at every soft line break, so each line of a
    paragraph is matched on its own: ``Topics: a\\nProducts: b`` yields both
    fields even though they share one paragraph.
    """
    for node in tree.walk():
        children = node.children
        rules = [idx for idx, child in enumerate(children) if child.type == "hr"]
        if not rules:
            continue
        for sibling in children[rules[-1] + 1:]:
            if sibling.type != "paragraph":
                continue
            for inline in sibling.children:
                for child in inline.children:
                    if child.type == "text":
                        yield child


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


@dataclass(frozen=True)
class FieldSelector:
    """Structural query plus the label pattern."""
    nodes: NodeQuery
    pattern: Pattern[str]

    def matches(self, tree: SyntaxTreeNode) -> Iterator[Tuple[SyntaxTreeNode, "re.Match[str]"]]:
        for node in self.nodes(tree):
            match = self.pattern.match(node.content or "")
            if match:
                yield node, match


class TextProcessor:
    """Extracts and updates a comma-separated list held in a text node."""

    def __init__(self, selector: FieldSelector):
        self.selector = selector

    def extract(self, tree: SyntaxTreeNode) -> List[str]:
        result: List[str] = []
        for _, match in self.selector.matches(tree):
            parts = (part.strip() for part in match.group(2).split(","))
            result.extend(part for part in parts if part)
        return result

    def update(self, tree: SyntaxTreeNode, descriptor: "FieldDescriptor", record: Mapping[str, Any]) -> int:
        """
        Replace the values after the label with ``record[descriptor.field]``.

        Returns:
            Number of text nodes rewritten (0 leaves the document untouched)
        """
        new_value = format_value(record.get(descriptor.field))
        updated = 0
        # materialize first, the rewrite changes what the pattern sees
        for node, _ in list(self.selector.matches(tree)):
            token = node.token
            token.content = self.selector.pattern.sub(
                lambda m: m.group(1) + new_value, token.content, count=1
            )
            updated += 1
        if not updated:
            logger.debug(f"No '{descriptor.field}' field found, leaving it unmodified")
        return updated


def label_pattern(label: str) -> Pattern[str]:
    return re.compile(rf"^({re.escape(label)}:\s*)(.*)")


@dataclass(frozen=True)
class FieldDescriptor:
    """Named output field and the processor that reads/writes it."""
    field: str
    processor: TextProcessor

    @classmethod
    def labeled(cls, field: str, label: str, nodes: NodeQuery = after_last_rule_paragraph_text) -> "FieldDescriptor":
        """Field stored as ``<label>: a, b, c`` in a paragraph after the last rule."""
        return cls(field=field, processor=TextProcessor(FieldSelector(nodes, label_pattern(label))))

    @classmethod
    def parse(cls, value: str) -> "FieldDescriptor":
        """
        Build from a ``name=Label`` command line value.

        ``authors`` alone is read as ``authors=Authors``.
        """
        name, sep, label = value.partition("=")
        name = name.strip()
        if not name:
            raise ValueError(f"invalid field: {value!r}")
        label = label.strip() if sep else name.capitalize()
        if not label:
            raise ValueError(f"invalid field: {value!r}")
        return cls.labeled(name, label)


DEFAULT_FIELDS: Tuple[FieldDescriptor, ...] = (
    FieldDescriptor.labeled("topics", "Topics"),
    FieldDescriptor.labeled("products", "Products"),
)
