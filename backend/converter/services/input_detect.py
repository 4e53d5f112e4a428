"""
Input-type and delimiter detection for raw pasted text.

Pasted content is either Markdown prose, delimited table data (usually TSV
copied from a spreadsheet), or something in between. Detection is purely
signal-based; nothing here raises.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Optional, Sequence, Tuple, Union

from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import (
    DelimiterDetection,
    InputAnalysis,
    InputType,
    WarningCategory,
    WarningSeverity,
    new_warning,
)
from shared.utils.app_logger import get_logger

logger = get_logger(__name__)

# Precedence order: earlier wins ties.
DELIMITER_CANDIDATES: Tuple[str, ...] = ("\t", ",", ";", "|")

DELIMITER_NAMES = {"\t": "tab", ",": "comma", ";": "semicolon", "|": "pipe"}

_HEADING_RE = re.compile(r"^>?\s*#{1,6}\s+")
_BLOCKQUOTE_RE = re.compile(r"^>\s*")
_CODE_FENCE_RE = re.compile(r"^```")
_BULLET_RE = re.compile(r"^>?\s*[-*]\s+")
_NUMBERED_RE = re.compile(r"^>?\s*\d+\.\s+")
_LINK_RE = re.compile(r"!?\[[^\]]+\]\([^)]+\)")


def split_lines(text: str) -> List[str]:
    """Split on any newline convention and drop blank lines."""
    return [line for line in re.split(r"\r\n|\r|\n", text or "") if line.strip()]


def _as_lines(lines_or_text: Union[str, Sequence[str], None]) -> List[str]:
    if lines_or_text is None:
        return []
    if isinstance(lines_or_text, str):
        return split_lines(lines_or_text)
    return [line for line in lines_or_text if line is not None and line.strip()]


def _modal_count(counts: List[int]) -> Tuple[int, int]:
    """Most frequent per-line count (larger count wins frequency ties) and its frequency."""
    if not counts:
        return 0, 0
    freq = Counter(counts)
    count, hits = max(freq.items(), key=lambda item: (item[1], item[0]))
    return count, hits


def detect_delimiter(
    lines_or_text: Union[str, Sequence[str], None],
    settings: Optional[ApplicationSettings] = None,
) -> DelimiterDetection:
    """
    Infer the field delimiter among tab, comma, semicolon and pipe.

    A candidate is consistent when its most frequent non-zero occurrence count
    shows up on at least half of the non-empty lines, or when it occurs on every
    non-empty line (jagged spreadsheet rows). The consistent candidate with the
    most occurrences per line wins; ties follow DELIMITER_CANDIDATES order.
    When nothing is consistent the configured default is returned together
    with an input warning.
    """
    settings = settings or get_settings()
    lines = _as_lines(lines_or_text)

    best: Optional[Tuple[str, int, float]] = None
    for delimiter in DELIMITER_CANDIDATES:
        counts = [line.count(delimiter) for line in lines]
        modal, hits = _modal_count(counts)
        on_every_line = bool(counts) and min(counts) > 0
        if modal <= 0 or (hits * 2 < len(lines) and not on_every_line):
            continue
        consistency = hits / len(lines)
        if best is None or modal > best[1]:
            best = (delimiter, modal, consistency)

    if best is not None:
        delimiter, modal, consistency = best
        logger.debug("Detected delimiter %s (%d per line, consistency %.2f)",
                     DELIMITER_NAMES[delimiter], modal, consistency)
        return DelimiterDetection(
            delimiter=delimiter,
            consistent=True,
            consistency=consistency,
            columns=modal + 1,
        )

    fallback = settings.detection.default_delimiter
    warnings = []
    if lines:
        warnings.append(
            new_warning(
                "INPUT_DELIMITER_FALLBACK",
                WarningSeverity.WARN,
                WarningCategory.INPUT,
                "No consistent delimiter found; splitting on the default delimiter.",
                hint="Paste tab-separated data copied directly from a spreadsheet.",
                details={"delimiter": fallback, "lines": len(lines)},
            )
        )
    return DelimiterDetection(delimiter=fallback, consistent=False, consistency=0.0, columns=1, warnings=warnings)


def detect_likely_delimiter(lines_or_text: Union[str, Sequence[str], None]) -> str:
    return detect_delimiter(lines_or_text).delimiter


def _markdown_score(lines: List[str]) -> Tuple[int, List[str]]:
    headings = blockquotes = fences = bullets = numbered = links = 0
    for line in lines:
        stripped = line.strip()
        if _HEADING_RE.match(line):
            headings += 1
        if _BLOCKQUOTE_RE.match(line):
            blockquotes += 1
        if _CODE_FENCE_RE.match(stripped):
            fences += 1
        if _BULLET_RE.match(line):
            bullets += 1
        if _NUMBERED_RE.match(line):
            numbered += 1
        if _LINK_RE.search(line):
            links += 1

    score = 0
    reasons: List[str] = []
    if headings:
        score += 30
        reasons.append("headings found")
    if blockquotes >= 2:
        score += 25
        reasons.append("blockquotes found")
    if fences >= 2:
        score += 40
        reasons.append("code fences found")
    if bullets:
        score += 15
        reasons.append("bullet lists found")
    if numbered:
        score += 10
        reasons.append("numbered lists found")
    if links and links * 4 >= len(lines):
        score += 15
        reasons.append("links found")
    return score, reasons


def _table_score(lines: List[str], detection: DelimiterDetection) -> Tuple[int, List[str]]:
    score = 0
    reasons: List[str] = []
    if "\t" in "".join(lines):
        score += 20
        reasons.append("tabs found")
    if any("," in line for line in lines):
        score += 20
        reasons.append("commas found")
    elif detection.consistent and detection.delimiter in (";", "|"):
        score += 20
        reasons.append(f"{DELIMITER_NAMES[detection.delimiter]}s found")

    if detection.consistent:
        if detection.columns >= 3:
            score += 40
            reasons.append("3+ consistent columns")
        if round(detection.consistency * len(lines)) >= 2:
            score += 30
            reasons.append("2+ rows with same column count")
    return score, reasons


def detect_input_type(text: Optional[str], settings: Optional[ApplicationSettings] = None) -> InputAnalysis:
    """Classify raw text as markdown, table or ambiguous."""
    settings = settings or get_settings()
    lines = split_lines(text or "")
    if not lines:
        return InputAnalysis(input_type=InputType.AMBIGUOUS, confidence=0, reason="Empty input")

    detection = detect_delimiter(lines, settings)
    md_score, md_reasons = _markdown_score(lines)
    table_score, table_reasons = _table_score(lines, detection)
    cfg = settings.detection

    def analysis(kind: InputType, confidence: int, reason: str) -> InputAnalysis:
        return InputAnalysis(
            input_type=kind,
            confidence=max(0, min(confidence, 100)),
            reason=reason,
            markdown_score=md_score,
            table_score=table_score,
        )

    if md_score > table_score and md_score >= cfg.markdown_min_score:
        return analysis(InputType.MARKDOWN, md_score, "Markdown signals: " + ", ".join(md_reasons))
    if table_score > md_score and table_score >= cfg.table_min_score:
        return analysis(InputType.TABLE, table_score, "Table signals: " + ", ".join(table_reasons))
    if (
        table_score == md_score
        and table_score >= cfg.table_min_score
        and detection.consistent
        and detection.consistency >= cfg.tie_consistency_threshold
    ):
        return analysis(InputType.TABLE, table_score, "Tie resolved by delimiter consistency")

    return analysis(
        InputType.AMBIGUOUS,
        50,
        f"Ambiguous input (markdown={md_score}, table={table_score})",
    )
