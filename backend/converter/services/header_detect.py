"""
Header-row detection.

Scores the first few rows of a block and returns the most header-like one
together with a 0-100 confidence that downstream quality scoring consumes.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

from converter.services.cell_matrix import CellMatrix
from converter.services.field_vocabulary import lookup_alias
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import ConversionWarning, WarningCategory, WarningSeverity, new_warning

_MARKDOWN_PREFIXES = (">", "```", "- ", "* ")
_MD_HEADING_RE = re.compile(r"^#{1,6}\s")
_DATA_VALUE_RE = re.compile(r"^[\d\s.,:/%$€¥₩+-]+$")


class HeaderDetector:
    """Picks the header row of a block."""

    DEFAULTS = {
        "alias_points": 25,
        "header_like_points": 5,
        "two_match_bonus": 20,
        "three_match_bonus": 30,
    }

    def __init__(self, settings: Optional[ApplicationSettings] = None):
        self.settings = settings or get_settings()

    def detect_header_row(self, matrix: CellMatrix) -> Tuple[int, int]:
        """Return (row index, confidence 0-100); (0, 0) for an empty matrix."""
        if matrix.row_count == 0:
            return 0, 0

        best_row, best_score = 0, 0
        for idx in range(min(self.settings.detection.header_scan_rows, matrix.row_count)):
            score = self.score_row(matrix.get_row(idx))
            if score > best_score:
                best_row, best_score = idx, score
        return best_row, best_score

    @classmethod
    def score_row(cls, row: Sequence[str]) -> int:
        if not row:
            return 0
        if any(cls._has_markdown_marker(cell) for cell in row):
            return 0
        if sum(1 for cell in row if cell.strip()) < 2:
            return 0

        score = 0
        matched = 0
        for cell in row:
            if lookup_alias(cell) is not None:
                matched += 1
                score += cls.DEFAULTS["alias_points"]
            if cls.looks_like_header(cell):
                score += cls.DEFAULTS["header_like_points"]

        if matched >= 2:
            score += cls.DEFAULTS["two_match_bonus"]
        if matched >= 3:
            score += cls.DEFAULTS["three_match_bonus"]
        return min(score, 100)

    @staticmethod
    def _has_markdown_marker(cell: str) -> bool:
        text = cell.strip()
        return text.startswith(_MARKDOWN_PREFIXES) or bool(_MD_HEADING_RE.match(text))

    @staticmethod
    def looks_like_header(cell: str) -> bool:
        text = cell.strip()
        if not text or len(text) > 50:
            return False
        if text[0].isdigit():
            return False
        if ". " in text:
            return False
        return len(text.split()) <= 3

    def low_confidence_warning(self, confidence: int, header_row: int) -> Optional[ConversionWarning]:
        threshold = self.settings.detection.header_low_confidence
        if confidence >= threshold:
            return None
        return new_warning(
            "HEADER_LOW_CONFIDENCE",
            WarningSeverity.WARN,
            WarningCategory.HEADER,
            f"Header row detection confidence is low ({confidence}%).",
            hint="Make sure the first row of the table holds column names.",
            details={"confidence": confidence, "header_row": header_row, "threshold": threshold},
        )


def _is_header_like_text(text: str) -> bool:
    t = text.strip()
    if not t or len(t) > 40:
        return False
    if any(ch.isdigit() for ch in t) and len(t) > 12:
        return False
    return len(re.split(r"\s+", t)) <= 6


def header_plausibility(row: Sequence[str]) -> float:
    """
    0-1 score of how header-like a row is: short, non-numeric, distinct cells.
    """
    total = 0
    good = 0
    uniq = set()
    for value in row:
        t = (value or "").strip()
        if not t:
            continue
        total += 1
        if _is_header_like_text(t) and not _DATA_VALUE_RE.match(t):
            good += 1
        uniq.add(t.lower())
    if total == 0:
        return 0.0
    return (good / total) * 0.75 + (len(uniq) / total) * 0.25

