"""
Block detection and selection tests

- split on blank row/column separators
- prefer the rich, wide data table over small label blocks
- English bonus only for mixed-language sheets
"""

from converter.services.block_selector import (
    BlockCandidate,
    BlockSelector,
    detect_language_hint,
    detect_table_blocks,
    estimate_english_score,
    select_preferred_block,
)
from converter.services.cell_matrix import CellMatrix
from shared.models.conversion import LanguageHint

SMALL_BLOCK = [
    ["Name", "Owner", "", "", ""],
    ["Project X", "Alice", "", "", ""],
]
BIG_BLOCK = [
    ["ID", "Feature", "Scenario", "Expected", "Status"],
    ["1", "Login", "Valid", "Dashboard", "open"],
    ["2", "Login", "Invalid", "Error", "done"],
]
BLANK = ["", "", "", "", ""]


def _matrix(rows):
    return CellMatrix.from_rows(rows).normalize()


class TestDetectTableBlocks:
    def test_single_table_is_one_block(self):
        blocks = detect_table_blocks(_matrix([["a", "b"], ["1", "2"], ["", ""], ["3", "4"]]))

        assert len(blocks) == 1
        assert blocks[0].id == "block_1"
        # A single blank row does not split the table
        assert blocks[0].bbox.to_a1() == "A1:B4"

    def test_small_fragments_are_dropped(self):
        blocks = detect_table_blocks(_matrix([["Title"], [""], [""], ["a", "b"], ["1", "2"]]))

        assert [b.id for b in blocks] == ["block_1"]
        assert blocks[0].bbox.to_a1() == "A4:B5"
        assert blocks[0].matrix.to_lists() == [["a", "b"], ["1", "2"]]

    def test_only_fragments_fall_back_to_whole_matrix(self):
        blocks = detect_table_blocks(_matrix([["x"]]))
        assert len(blocks) == 1
        assert blocks[0].bbox.to_a1() == "A1:A1"

    def test_empty_matrix(self):
        assert detect_table_blocks(CellMatrix()) == []

    def test_vertical_and_side_by_side_split(self):
        matrix = _matrix(SMALL_BLOCK + [BLANK, BLANK] + BIG_BLOCK)
        blocks = detect_table_blocks(matrix)
        assert [b.bbox.to_a1() for b in blocks] == ["A1:B2", "A5:E7"]


class TestSelectPreferredBlock:
    def test_rich_block_beats_fragment(self):
        fragment = BlockCandidate(quality_score=0.9, row_count=1, column_count=2)
        table = BlockCandidate(quality_score=0.5, row_count=2, column_count=5)

        assert select_preferred_block([fragment, table]) == 1
        assert select_preferred_block([table, fragment]) == 0

    def test_wide_block_beats_narrow(self):
        narrow = BlockCandidate(quality_score=0.9, row_count=6, column_count=2)
        wide = BlockCandidate(quality_score=0.4, row_count=2, column_count=4)
        assert select_preferred_block([narrow, wide]) == 1

    def test_exact_tie_goes_to_first(self):
        a = BlockCandidate(quality_score=0.5, row_count=3, column_count=3)
        assert select_preferred_block([a, a]) == 0

    def test_score_tie_goes_to_more_rows(self):
        # Both row counts are past the richness cap, so scores tie
        fewer = BlockCandidate(quality_score=0.5, row_count=8, column_count=6)
        more = BlockCandidate(quality_score=0.5, row_count=12, column_count=6)
        assert select_preferred_block([fewer, more]) == 1

    def test_english_bonus_in_mixed_sheets(self):
        japanese = BlockCandidate(quality_score=0.5, row_count=3, column_count=4, english_score=0.1,
                                  language_hint=LanguageHint.MIXED)
        english = BlockCandidate(quality_score=0.5, row_count=3, column_count=4, english_score=0.9,
                                 language_hint=LanguageHint.MIXED)
        assert select_preferred_block([japanese, english]) == 1

    def test_empty_candidates(self):
        assert select_preferred_block([]) == 0


class TestLanguageSignals:
    def test_english_score(self):
        assert estimate_english_score(["Name", "Type"], [["Alice", "Admin"]]) == 1.0
        assert estimate_english_score(["項目名", "種類"], [["ユーザー名", "テキスト"]]) == 0.0
        assert estimate_english_score([], []) == 0.0

    def test_language_hint(self):
        headers = ["Name", "項目名", "種"]
        english = estimate_english_score(headers, [])
        assert english == 0.5
        assert detect_language_hint(english, headers, []) == LanguageHint.MIXED
        assert detect_language_hint(1.0, ["Name"], []) == LanguageHint.ENGLISH
        assert detect_language_hint(0.0, ["項目名"], []) == LanguageHint.JAPANESE
        assert detect_language_hint(0.0, ["123"], []) == LanguageHint.UNKNOWN


class TestBlockSelector:
    def test_larger_block_selected_regardless_of_order(self):
        selection = BlockSelector().select(_matrix(SMALL_BLOCK + [BLANK, BLANK] + BIG_BLOCK))

        assert len(selection.candidates) == 2
        assert selection.selected_index == 1
        chosen = selection.selected.block
        assert chosen.id == "block_2"
        assert chosen.total_rows == 2
        assert chosen.total_columns == 5
        assert chosen.range == "A5:E7"
        assert [w.code for w in selection.warnings] == ["DETECT_MULTIPLE_BLOCKS"]

        reversed_selection = BlockSelector().select(_matrix(BIG_BLOCK + [BLANK, BLANK] + SMALL_BLOCK))
        assert reversed_selection.selected_index == 0
        assert reversed_selection.selected.block.total_columns == 5

    def test_parallel_tables_prefer_mapped_english_block(self):
        matrix = _matrix(
            [
                ["項目名", "種類", "", "Item Name", "Item Type", "Action"],
                ["ユーザー名", "テキスト", "", "User name", "Text", "Enter"],
                ["パスワード", "パスワード", "", "Password", "Password", "Enter"],
            ]
        )
        selection = BlockSelector().select(matrix)

        assert [b.range for b in selection.blocks] == ["A1:B3", "D1:F3"]
        selected = selection.selected
        assert selected.block.id == "block_2"
        assert selected.headers == ["Item Name", "Item Type", "Action"]
        assert selected.block.language_hint == LanguageHint.ENGLISH
        assert selection.blocks[0].language_hint == LanguageHint.JAPANESE

    def test_analyzed_block_details(self):
        selection = BlockSelector().select(_matrix([["Report", "", ""], ["", "", ""], ["", "", ""]] + [
            ["ID", "Scenario", "Expected"],
            ["1", "Login", "OK"],
        ]))
        selected = selection.selected

        assert selection.warnings == []
        assert selected.block.header_row == 0
        assert selected.block.confidence == 100
        assert selected.data_rows == [["1", "Login", "OK"]]
        assert selected.quality.core_mapped == 2
        assert selected.block.mapping_quality == selected.quality

    def test_empty_matrix_selects_nothing(self):
        selection = BlockSelector().select(CellMatrix())
        assert selection.selected is None
        assert selection.blocks == []
