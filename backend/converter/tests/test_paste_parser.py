import pytest

from converter.services.paste_parser import parse_paste, parse_simple
from shared.exceptions import InputError


class TestPasteParser:
    def test_tab_separated_paste(self):
        parsed = parse_paste("ID\tScenario\n1\tLogin\n2\tLogout\n")

        assert parsed.delimiter == "\t"
        assert parsed.consistent_delimiter is True
        assert parsed.row_count == 3
        assert parsed.col_count == 2
        assert parsed.matrix.get_row(2) == ["2", "Logout"]

    def test_crlf_and_padding(self):
        matrix = parse_simple("a\tb\tc\r\n1\t2\r\n")
        assert matrix.to_lists() == [["a", "b", "c"], ["1", "2", ""]]

    def test_explicit_delimiter(self):
        parsed = parse_paste("a;b\nc;d", delimiter=";")
        assert parsed.delimiter == ";"
        assert parsed.warnings == []
        assert parsed.matrix.to_lists() == [["a", "b"], ["c", "d"]]

    def test_markdown_table_paste(self):
        text = "| A | B |\n| --- | :---: |\n| 1 | 2 |\n| 3 |  |"
        parsed = parse_paste(text)

        assert parsed.delimiter == "|"
        assert parsed.matrix.to_lists() == [["A", "B"], ["1", "2"], ["3", ""]]

    def test_blank_lines_are_kept_as_separators(self):
        matrix = parse_simple("a\tb\n\n\nc\td")
        assert matrix.row_count == 4
        assert matrix.get_row(1) == ["", ""]

    def test_no_quote_handling(self):
        matrix = parse_simple('"a,b",c\n1,2,3', delimiter=",")
        assert matrix.get_row(0) == ['"a', 'b"', "c"]

    def test_inconsistent_delimiter_warning_is_kept(self):
        parsed = parse_paste("one line\nanother,line\nthird")
        assert parsed.consistent_delimiter is False
        assert [w.code for w in parsed.warnings] == ["INPUT_DELIMITER_FALLBACK"]

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", None])
    def test_empty_input_raises(self, text):
        with pytest.raises(InputError) as exc:
            parse_paste(text)
        assert exc.value.code == "INPUT_ERROR"
        assert "empty" in str(exc.value).lower()
