"""
Markdown formatting helpers shared by the renderers.
"""

import re
from typing import List

_CELL_SPECIAL_RE = re.compile(r"(\\*)([|`])")
_TRAILING_BACKSLASHES_RE = re.compile(r"\\+\Z")
_NEWLINE_RE = re.compile(r"\r\n|\r|\n")
_LIST_PREFIX_RE = re.compile(r"^(?:\d+[.)]|[-*•])\s+")
_MARKDOWN_SPECIAL_RE = re.compile(r"([\\*_\[\]])")


def escape_table_cell(text: str) -> str:
    """
    Make text safe inside a Markdown table cell.

    Raw pipes and backticks are backslash-escaped, a dangling backslash at
    the end of a line is doubled and newlines become ``<br>``. Characters that
    are already escaped are left alone, so escaping twice is a no-op.
    """
    if not text:
        return ""
    return "<br>".join(_escape_cell_line(line) for line in _NEWLINE_RE.split(text))


def _escape_cell_line(line: str) -> str:
    def special(match):
        slashes, char = match.group(1), match.group(2)
        # an even run of backslashes leaves the character unescaped
        return slashes + ("\\" if len(slashes) % 2 == 0 else "") + char

    out = _CELL_SPECIAL_RE.sub(special, line)
    trailing = _TRAILING_BACKSLASHES_RE.search(out)
    if trailing and len(trailing.group(0)) % 2:
        out += "\\"
    return out


def escape_markdown(text: str) -> str:
    """Escape inline emphasis and link characters."""
    return _MARKDOWN_SPECIAL_RE.sub(r"\\\1", text or "")


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in _NEWLINE_RE.split(text or "")]


def format_as_numbered_list(text: str) -> List[str]:
    """
    One ``N. item`` entry per non-empty line, in source order.

    Existing numbering or bullet prefixes are replaced; blank lines and lone
    dashes are skipped. Empty input gives an empty list.
    """
    items = []
    for line in split_lines(text):
        if not line or line == "-":
            continue
        items.append(_LIST_PREFIX_RE.sub("", line, count=1))
    return [f"{i}. {item}" for i, item in enumerate(items, start=1)]


def single_line(text: str, separator: str = "; ") -> str:
    return separator.join(line for line in split_lines(text) if line)


def yaml_quote(value: str) -> str:
    """Double-quoted YAML scalar on a single line."""
    text = single_line(value or "", " ").replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'
