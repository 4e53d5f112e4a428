from converter.services.input_detect import (
    detect_delimiter,
    detect_input_type,
    detect_likely_delimiter,
    split_lines,
)
from shared.models.conversion import InputType


class TestDelimiterDetection:
    def test_semicolon_rows(self):
        lines = ["id;name;status", "1;Login;open", "2;Checkout;done"]
        detection = detect_delimiter(lines)

        assert detection.delimiter == ";"
        assert detection.consistent is True
        assert detection.columns == 3
        assert detection.warnings == []
        assert detect_likely_delimiter(lines) == ";"

    def test_tab_wins_tie_with_comma(self):
        assert detect_likely_delimiter("a\tb,c\nd\te,f") == "\t"

    def test_higher_count_beats_precedence(self):
        assert detect_likely_delimiter("a,b,c\td\n1,2,3\t4") == ","

    def test_pipe_table(self):
        text = "| A | B |\n|---|---|\n| 1 | 2 |"
        assert detect_likely_delimiter(text) == "|"

    def test_majority_is_enough(self):
        lines = ["a\tb\tc", "1\t2\t3", "4\t5\t6", "notes without tabs"]
        detection = detect_delimiter(lines)
        assert detection.delimiter == "\t"
        assert detection.consistency == 0.75

    def test_half_of_the_lines_is_enough(self):
        detection = detect_delimiter("a\tb\tc\n1\t2")
        assert detection.delimiter == "\t"
        assert detection.consistent is True
        assert detection.columns == 3

    def test_jagged_rows_with_delimiter_on_every_line(self):
        detection = detect_delimiter(["ID\tFeature\tScenario\tExpected", "1\tLogin\tValid", "2\tLogout"])
        assert detection.delimiter == "\t"
        assert detection.consistent is True
        assert detection.warnings == []

    def test_inconsistent_input_falls_back_with_warning(self):
        detection = detect_delimiter("hello world\nfoo,bar\nbaz")

        assert detection.consistent is False
        assert detection.delimiter == ","
        assert [w.code for w in detection.warnings] == ["INPUT_DELIMITER_FALLBACK"]
        assert detection.warnings[0].category.value == "input"
        assert detection.warnings[0].severity.value == "warn"

    def test_empty_input_has_no_warning(self):
        detection = detect_delimiter("")
        assert detection.delimiter == ","
        assert detection.warnings == []

    def test_split_lines_handles_newline_conventions(self):
        assert split_lines("a\r\nb\rc\n\n  \nd") == ["a", "b", "c", "d"]


class TestInputTypeDetection:
    def test_tsv_is_table(self):
        text = "Name\tAge\tCity\nAlice\t30\tTokyo\nBob\t25\tOsaka"
        analysis = detect_input_type(text)

        assert analysis.input_type == InputType.TABLE
        assert analysis.confidence == 90
        assert analysis.table_score == 90
        assert analysis.markdown_score == 0

    def test_markdown_document(self):
        text = "# Title\n\n- item one\n- item two\n\nSome text"
        analysis = detect_input_type(text)

        assert analysis.input_type == InputType.MARKDOWN
        assert analysis.markdown_score == 45
        assert "headings" in analysis.reason

    def test_code_fences_count(self):
        text = "Intro\n```\nprint('x')\n```\nOutro"
        analysis = detect_input_type(text)
        assert analysis.input_type == InputType.MARKDOWN
        assert analysis.markdown_score == 40

    def test_plain_sentence_is_ambiguous(self):
        analysis = detect_input_type("just some plain text")
        assert analysis.input_type == InputType.AMBIGUOUS
        assert analysis.confidence == 50

    def test_empty_input(self):
        for text in ("", "   \n\n", None):
            analysis = detect_input_type(text)
            assert analysis.input_type == InputType.AMBIGUOUS
            assert analysis.confidence == 0
