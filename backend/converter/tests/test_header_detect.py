from converter.services.cell_matrix import CellMatrix
from converter.services.header_detect import HeaderDetector, header_plausibility


class TestHeaderDetector:
    def test_header_below_title_row(self):
        matrix = CellMatrix.from_rows(
            [
                ["Test Plan", ""],
                ["ID", "Scenario"],
                ["1", "Login"],
            ]
        ).normalize()

        row, confidence = HeaderDetector().detect_header_row(matrix)
        assert row == 1
        assert confidence == 80

    def test_many_aliases_cap_at_100(self):
        row = ["ID", "Feature", "Scenario", "Expected", "Status"]
        assert HeaderDetector.score_row(row) == 100

    def test_markdown_rows_are_not_headers(self):
        assert HeaderDetector.score_row(["# Title", "Status"]) == 0
        assert HeaderDetector.score_row(["> quote", "Status"]) == 0
        assert HeaderDetector.score_row(["- item", "Status"]) == 0

    def test_bare_hash_is_a_number_column(self):
        # "#" is the usual header of a row-number column
        assert HeaderDetector.score_row(["#", "Item Name"]) == 80

    def test_single_cell_row_scores_zero(self):
        assert HeaderDetector.score_row(["Status", "", ""]) == 0
        assert HeaderDetector.score_row([]) == 0

    def test_generic_headers_have_low_confidence(self):
        matrix = CellMatrix.from_rows([["Alpha", "Beta"], ["x", "y"]])
        detector = HeaderDetector()
        row, confidence = detector.detect_header_row(matrix)

        assert row == 0
        assert confidence == 10
        warning = detector.low_confidence_warning(confidence, row)
        assert warning is not None
        assert warning.code == "HEADER_LOW_CONFIDENCE"
        assert warning.details["confidence"] == 10

    def test_no_warning_for_confident_header(self):
        assert HeaderDetector().low_confidence_warning(80, 0) is None

    def test_empty_matrix(self):
        assert HeaderDetector().detect_header_row(CellMatrix()) == (0, 0)

    def test_looks_like_header(self):
        assert HeaderDetector.looks_like_header("Expected Result")
        assert not HeaderDetector.looks_like_header("1st step")
        assert not HeaderDetector.looks_like_header("Click it. Then wait")
        assert not HeaderDetector.looks_like_header("one two three four")


class TestHeaderPlausibility:
    def test_short_distinct_labels(self):
        assert header_plausibility(["Name", "Age", "City"]) == 1.0

    def test_numeric_row(self):
        assert header_plausibility(["123", "456"]) == 0.25

    def test_duplicates_lower_the_score(self):
        assert header_plausibility(["Name", "Name"]) == 0.875

    def test_blank_row(self):
        assert header_plausibility(["", "  "]) == 0.0
