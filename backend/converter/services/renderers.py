"""
Markdown renderers.

Two output formats exist: a grouped specification document (``spec``) and a
plain Markdown table (``table``). ``get_renderer`` resolves a template name
strictly; anything else is an UnsupportedTemplateError. Output is
deterministic: identical tables render to identical text.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple, Union

from converter.services.markdown_format import (
    escape_markdown,
    escape_table_cell,
    format_as_numbered_list,
    single_line,
    split_lines,
    yaml_quote,
)
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import CanonicalField, CanonicalRow, CanonicalTable, MappingSchema, OutputFormat

F = CanonicalField

META_FIELDS: Tuple[Tuple[str, CanonicalField], ...] = (
    ("id", F.ID),
    ("type", F.TYPE),
    ("priority", F.PRIORITY),
    ("status", F.STATUS),
)

UI_FIELDS: Tuple[Tuple[str, CanonicalField], ...] = (
    ("No", F.NO),
    ("Item Name", F.ITEM_NAME),
    ("Item Type", F.ITEM_TYPE),
    ("Required/Optional", F.REQUIRED_OPTIONAL),
    ("Input Restrictions", F.INPUT_RESTRICTIONS),
    ("Display Conditions", F.DISPLAY_CONDITIONS),
    ("Action", F.ACTION),
    ("Navigation Destination", F.NAVIGATION_DESTINATION),
)


def _front_matter(name: str, doc_type: str, total_items: int, schema: str) -> List[str]:
    return [
        "---",
        f"name: {yaml_quote(name)}",
        'version: "1.0"',
        f'type: "{doc_type}"',
        f'schema: "{schema}"',
        f"total_items: {total_items}",
        "---",
        "",
    ]


def _summary(metrics: List[Tuple[str, object]]) -> List[str]:
    lines = ["## Summary", "", "| Metric | Value |", "| --- | --- |"]
    lines.extend(f"| {name} | {value} |" for name, value in metrics)
    lines.append("")
    return lines


def _table_lines(headers: List[str], rows: List[List[str]]) -> List[str]:
    width = len(headers)
    lines = [
        "| " + " | ".join(escape_table_cell(h) for h in headers) + " |",
        "| " + " | ".join("---" for _ in headers) + " |",
    ]
    for row in rows:
        cells = (list(row) + [""] * width)[:width]
        lines.append("| " + " | ".join(escape_table_cell(c) for c in cells) + " |")
    return lines


class SpecRenderer:
    """Groups rows by Feature and renders one entry per row."""

    output_format = OutputFormat.SPEC

    def __init__(self, settings: Optional[ApplicationSettings] = None):
        self.settings = settings or get_settings()

    def render(self, table: Optional[CanonicalTable]) -> str:
        table = table or CanonicalTable()
        cfg = self.settings.render
        title = table.title or cfg.spec_title
        schema = self._schema(table)

        groups = self.group_by_feature(table.rows)
        lines = _front_matter(title, "specification", len(table.rows), schema.value)
        lines += [f"# {escape_markdown(title)}", ""]
        lines += _summary(
            [
                ("Total Items", len(table.rows)),
                ("Features", len(groups)),
                ("Mapped Columns", len(table.column_map)),
                ("Extra Columns", len(table.extra_headers)),
            ]
        )
        lines += ["## Specifications", ""]
        for feature, rows in groups.items():
            lines += [f"### {escape_markdown(feature)}", ""]
            for row in rows:
                lines += self.render_item(row)

        return "\n".join(lines).rstrip("\n") + "\n"

    def group_by_feature(self, rows: List[CanonicalRow]) -> "OrderedDict[str, List[CanonicalRow]]":
        groups: "OrderedDict[str, List[CanonicalRow]]" = OrderedDict()
        for row in rows:
            feature = single_line(row.get(F.FEATURE), " ") or self.settings.render.uncategorized_label
            groups.setdefault(feature, []).append(row)
        return groups

    @staticmethod
    def item_title(row: CanonicalRow) -> str:
        title = ""
        for field in (F.SCENARIO, F.FEATURE, F.ITEM_NAME, F.NO):
            title = single_line(row.get(field), " ")
            if title:
                break
        row_id = single_line(row.get(F.ID), " ")
        if row_id:
            return f"{row_id}: {title}" if title else row_id
        return title or f"Item {row.source_index + 1}"

    def render_item(self, row: CanonicalRow) -> List[str]:
        lines = [f"#### {escape_markdown(self.item_title(row))}", ""]

        meta = [(label, row.get(field)) for label, field in META_FIELDS if row.get(field)]
        if meta:
            lines += ["| Field | Value |", "| --- | --- |"]
            lines += [f"| {label} | {escape_table_cell(value)} |" for label, value in meta]
            lines.append("")

        scenario = row.get(F.SCENARIO)
        if scenario and scenario != row.get(F.FEATURE):
            lines += ["**Description:**", *split_lines(scenario), ""]
        if row.get(F.PRECONDITION):
            lines += ["**Precondition:**", *split_lines(row.get(F.PRECONDITION)), ""]
        steps = format_as_numbered_list(row.get(F.INSTRUCTIONS))
        if steps:
            lines += ["**Steps:**", *steps, ""]
        if row.get(F.EXPECTED):
            lines += ["**Expected Result:**", *split_lines(row.get(F.EXPECTED)), ""]
        if row.get(F.INPUTS):
            lines += ["**Test Data:**", "```", row.get(F.INPUTS).replace("```", "'''"), "```", ""]
        if row.get(F.ENDPOINT):
            lines += ["**API/Endpoint:**", f"`{single_line(row.get(F.ENDPOINT), ' ')}`", ""]

        ui = [(label, row.get(field)) for label, field in UI_FIELDS if row.get(field)]
        if ui:
            lines.append("**Field Specification:**")
            lines += [f"- **{label}:** {single_line(value)}" for label, value in ui]
            lines.append("")
        if row.get(F.NOTES):
            lines += ["**Notes:**", *split_lines(row.get(F.NOTES)), ""]
        if row.extras:
            lines.append("**Additional Fields:**")
            lines += [f"- **{escape_markdown(k)}:** {single_line(v)}" for k, v in row.extras.items()]
            lines.append("")
        return lines

    @staticmethod
    def _schema(table: CanonicalTable) -> MappingSchema:
        ui_fields = {field for _, field in UI_FIELDS}
        ui_count = sum(1 for f in table.column_map if f in ui_fields)
        spec_count = len(table.column_map) - ui_count
        return MappingSchema.SPEC_TABLE if ui_count > spec_count else MappingSchema.SPEC


class TableRenderer:
    """Renders a single Markdown table of source or mapped columns."""

    output_format = OutputFormat.TABLE

    def __init__(self, settings: Optional[ApplicationSettings] = None, columns: Optional[str] = None):
        self.settings = settings or get_settings()
        self.columns = columns or self.settings.render.table_columns

    def render(self, table: Optional[CanonicalTable]) -> str:
        table = table or CanonicalTable()
        title = table.title or self.settings.render.table_title
        headers, rows = self.table_cells(table)

        lines = _front_matter(title, "table", len(rows), "table")
        lines += [f"# {escape_markdown(title)}", ""]
        lines += _summary([("Total Items", len(rows)), ("Columns", len(headers))])
        if headers:
            lines += _table_lines(headers, rows)
        return "\n".join(lines).rstrip("\n") + "\n"

    def table_cells(self, table: CanonicalTable) -> Tuple[List[str], List[List[str]]]:
        if self.columns == "mapped" and table.column_map:
            fields = [f for f, _ in sorted(table.column_map.items(), key=lambda item: item[1])]
            headers = [f.label for f in fields]
            rows = [[row.get(f) for f in fields] for row in table.rows]
            return headers, rows
        return list(table.headers), [list(r) for r in table.source_rows]


Renderer = Union[SpecRenderer, TableRenderer]

_RENDERERS: Dict[OutputFormat, type] = {
    OutputFormat.SPEC: SpecRenderer,
    OutputFormat.TABLE: TableRenderer,
}


def get_renderer(template: Union[str, OutputFormat, None], settings: Optional[ApplicationSettings] = None) -> Renderer:
    """
    Renderer for exactly ``spec`` or ``table``.

    Raises:
        UnsupportedTemplateError: for any other name, legacy aliases included
    """
    return _RENDERERS[OutputFormat.parse(template)](settings)


def render(
    table: Optional[CanonicalTable],
    template: Union[str, OutputFormat, None],
    settings: Optional[ApplicationSettings] = None,
) -> str:
    return get_renderer(template, settings).render(table)
