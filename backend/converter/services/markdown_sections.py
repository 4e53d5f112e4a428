"""
Markdown passthrough for prose input.

Markdown input skips the table pipeline: its sections are extracted for
preview and the original text is wrapped in the same front-matter block the
renderers emit.
"""

from __future__ import annotations

import re
from typing import List, Optional

from converter.services.markdown_format import yaml_quote
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import ProseSection

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_BOLD_HEADING_RE = re.compile(r"^\*\*([^*]+)\*\*\s*$")


def _strip_quote(line: str) -> str:
    text = line.strip()
    while text.startswith(">"):
        text = text[1:].strip()
    return text


def _heading(line: str):
    match = _HEADING_RE.match(line)
    if match:
        return len(match.group(1)), match.group(2).strip()
    match = _BOLD_HEADING_RE.match(line)
    if match:
        return 2, match.group(1).strip()
    return None


def extract_sections(text: Optional[str]) -> List[ProseSection]:
    """Heading-delimited sections; blank lines are dropped from content."""
    sections: List[ProseSection] = []
    current: Optional[dict] = None
    in_fence = False

    for raw in (text or "").splitlines():
        line = _strip_quote(raw)
        if line.startswith("```"):
            in_fence = not in_fence
        found = None if in_fence or line.startswith("```") else _heading(line)
        if found is not None:
            if current is not None:
                sections.append(ProseSection(**current))
            level, heading = found
            current = {"heading": heading, "level": level, "content": ""}
            continue
        if current is not None and line:
            current["content"] = f"{current['content']}\n{line}" if current["content"] else line

    if current is not None:
        sections.append(ProseSection(**current))
    return sections


def document_title(text: Optional[str], default: str) -> str:
    for section in extract_sections(text):
        if section.level == 1:
            return section.heading
    return default


def render_markdown_document(
    text: Optional[str],
    title: Optional[str] = None,
    settings: Optional[ApplicationSettings] = None,
) -> str:
    settings = settings or get_settings()
    body = (text or "").strip()
    name = title or document_title(body, settings.render.spec_title)
    sections = extract_sections(body)
    lines = [
        "---",
        f"name: {yaml_quote(name)}",
        'version: "1.0"',
        'type: "specification"',
        'source: "markdown"',
        f"total_items: {len(sections)}",
        "---",
        "",
        body,
    ]
    return "\n".join(lines).rstrip("\n") + "\n"
