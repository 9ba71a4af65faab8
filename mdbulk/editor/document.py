"""
Markdown document tree.

Parsing is done by markdown-it-py, serialization by mdformat's renderer so
an updated document is written back as normalized Markdown.
"""
from pathlib import Path
from typing import Any, Dict, List, Union

from markdown_it import MarkdownIt
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdformat.renderer import MDRenderer, RenderContext, RenderTreeNode

RULE = "---"


def _render_rule(node: RenderTreeNode, context: RenderContext) -> str:
    return RULE


class DashRulePlugin:
    """mdformat renderer plugin writing thematic breaks as ``---``."""
    RENDERERS = {"hr": _render_rule}
    POSTPROCESSORS: Dict[str, Any] = {}


def build_markdown() -> MarkdownIt:
    """CommonMark parser wired to the mdformat renderer."""
    mdit = MarkdownIt(renderer_cls=MDRenderer)
    mdit.options["mdformat"] = {}
    mdit.options["store_labels"] = True
    mdit.options["parser_extension"] = [DashRulePlugin]
    mdit.options["codeformatters"] = {}
    return mdit


class MarkdownDocument:
    """
    Parsed Markdown with a syntax tree view over its tokens.

    The tree nodes share their tokens with the token stream, so editing
    ``node.token.content`` is reflected by ``render()``.
    """

    def __init__(self, text: str):
        self._mdit = build_markdown()
        self._env: Dict[str, Any] = {}
        self._tokens: List[Token] = self._mdit.parse(text, self._env)
        self.tree = SyntaxTreeNode(self._tokens)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "MarkdownDocument":
        """Read ``path`` as UTF-8; undecodable bytes become U+FFFD so binary files parse to no fields."""
        return cls(Path(path).read_text(encoding="utf-8", errors="replace"))

    def render(self) -> str:
        return self._mdit.renderer.render(self._tokens, self._mdit.options, self._env)
