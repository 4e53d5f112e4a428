import pytest

from converter.services.canonicalize import build_canonical_table
from converter.services.renderers import SpecRenderer, TableRenderer, get_renderer, render
from shared.exceptions import UnsupportedTemplateError
from shared.models.conversion import CanonicalField, CanonicalTable

F = CanonicalField


def _table(headers, rows, column_map, title=""):
    table, _ = build_canonical_table(headers, rows, column_map, title)
    return table


LOGIN_TABLE = dict(
    headers=["ID", "Feature", "Scenario", "Steps", "Owner"],
    rows=[
        ["TC-1", "Login", "Valid login", "Open app\nEnter credentials", "Alice"],
        ["TC-2", "Login", "Invalid password", "", ""],
        ["TC-3", "", "Orphan case", "", ""],
    ],
    column_map={F.ID: 0, F.FEATURE: 1, F.SCENARIO: 2, F.INSTRUCTIONS: 3},
)


class TestSpecRenderer:
    def test_empty_table_still_has_summary(self):
        markdown = SpecRenderer().render(CanonicalTable())

        assert "## Summary" in markdown
        assert "| Total Items | 0 |" in markdown
        assert "total_items: 0" in markdown
        assert markdown.startswith('---\nname: "Specification"\n')

    def test_rows_grouped_by_feature(self):
        markdown = SpecRenderer().render(_table(**LOGIN_TABLE))
        lines = markdown.splitlines()

        assert lines.count("### Login") == 1
        assert "#### TC-1: Valid login" in lines
        assert "#### TC-2: Invalid password" in lines
        assert lines.index("#### TC-1: Valid login") < lines.index("#### TC-2: Invalid password")
        assert "| Features | 2 |" in lines
        assert "### Uncategorized" in lines
        assert lines.index("### Login") < lines.index("### Uncategorized")

    def test_steps_become_numbered_list(self):
        lines = SpecRenderer().render(_table(**LOGIN_TABLE)).splitlines()
        start = lines.index("**Steps:**")
        assert lines[start + 1:start + 3] == ["1. Open app", "2. Enter credentials"]

    def test_meta_and_extra_fields(self):
        lines = SpecRenderer().render(_table(**LOGIN_TABLE)).splitlines()
        assert "| id | TC-1 |" in lines
        assert "**Additional Fields:**" in lines
        assert "- **Owner:** Alice" in lines
        assert "| Extra Columns | 1 |" in lines

    def test_schema_marker(self):
        ui = _table(["No", "Item Name", "Action"], [["1", "Email", "Enter"]],
                    {F.NO: 0, F.ITEM_NAME: 1, F.ACTION: 2})
        markdown = SpecRenderer().render(ui)
        assert 'schema: "spec-table"' in markdown
        assert "- **Item Name:** Email" in markdown.splitlines()

        assert 'schema: "spec"' in SpecRenderer().render(_table(**LOGIN_TABLE))

    def test_output_is_deterministic(self):
        table = _table(**LOGIN_TABLE)
        assert SpecRenderer().render(table) == SpecRenderer().render(table)


class TestTableRenderer:
    def test_pipes_are_escaped(self):
        table = _table(["Name", "Note"], [["a|b", "x"]], {})
        lines = TableRenderer().render(table).splitlines()

        assert "| Name | Note |" in lines
        assert "| --- | --- |" in lines
        assert "| a\\|b | x |" in lines
        assert "| Total Items | 1 |" in lines

    def test_trailing_backslash_keeps_cells_apart(self):
        table = _table(["Path", "Note"], [["C:\\tmp\\", "x"]], {})
        lines = TableRenderer().render(table).splitlines()

        assert "| C:\\tmp\\\\ | x |" in lines
        assert "| Columns | 2 |" in lines

    def test_empty_table(self):
        markdown = TableRenderer().render(None)
        assert "| Total Items | 0 |" in markdown
        assert 'name: "Data Table"' in markdown

    def test_mapped_columns_only(self):
        table = _table(**LOGIN_TABLE)
        headers, rows = TableRenderer(columns="mapped").table_cells(table)
        assert headers == ["ID", "Feature", "Scenario", "Instructions"]
        assert rows[0][:3] == ["TC-1", "Login", "Valid login"]

    def test_all_columns_by_default(self):
        headers, _ = TableRenderer().table_cells(_table(**LOGIN_TABLE))
        assert headers == LOGIN_TABLE["headers"]


class TestTemplateSelection:
    def test_accepts_exact_names(self):
        assert isinstance(get_renderer("spec"), SpecRenderer)
        assert isinstance(get_renderer("table"), TableRenderer)

    @pytest.mark.parametrize("name", ["default", "spec-table", "Spec", "", None])
    def test_rejects_other_names(self, name):
        with pytest.raises(UnsupportedTemplateError) as exc:
            get_renderer(name)
        assert exc.value.code == "UNSUPPORTED_TEMPLATE"
        assert exc.value.details["supported"] == ["spec", "table"]

    def test_render_helper(self):
        assert "| Total Items | 0 |" in render(CanonicalTable(), "table")
        with pytest.raises(UnsupportedTemplateError):
            render(CanonicalTable(), "default")
