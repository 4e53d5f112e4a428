"""
🔥 THINK ULTRA! Block detection and selection

Sheets and pastes often hold more than one rectangular region: decorative
titles, small label tables, parallel tables in two languages. This module
splits a normalized matrix into candidate blocks separated by blank rows and
columns, scores each one (header row, column mapping, quality, size,
language) and picks the block most likely to be the real data table.

Selection never errors. Without separators the whole matrix is the only
candidate.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from converter.services.cell_matrix import CellMatrix
from converter.services.column_mapper import ColumnMapper
from converter.services.header_detect import HeaderDetector, header_plausibility
from converter.services.mapping_quality import evaluate_mapping_quality
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import (
    Block,
    BoundingBox,
    CanonicalField,
    ColumnMappingResult,
    ConversionWarning,
    LanguageHint,
    MappingQuality,
    MappingSchema,
    WarningCategory,
    WarningSeverity,
    new_warning,
)
from shared.utils.app_logger import get_logger

logger = get_logger(__name__)

_TIE_EPSILON = 1e-9


@dataclass(frozen=True)
class MatrixBlock:
    """A rectangular region of the source matrix and its normalized cells."""

    id: str
    bbox: BoundingBox
    matrix: CellMatrix


# ---------------------------
# Region detection
# ---------------------------


def _tighten_bbox(matrix: CellMatrix, bbox: BoundingBox) -> Optional[BoundingBox]:
    top, bottom, left, right = bbox.top, bbox.bottom, bbox.left, bbox.right

    while top <= bottom and matrix.is_blank_row(top, left, right):
        top += 1
    while bottom >= top and matrix.is_blank_row(bottom, left, right):
        bottom -= 1
    while left <= right and matrix.is_blank_col(left, top, bottom):
        left += 1
    while right >= left and matrix.is_blank_col(right, top, bottom):
        right -= 1

    if top > bottom or left > right:
        return None
    return BoundingBox(top=top, left=left, bottom=bottom, right=right)


def _runs(blank_flags: Sequence[bool], offset: int, gap: int) -> List[Tuple[int, int]]:
    """Content runs separated by at least ``gap`` consecutive blank positions."""
    runs: List[Tuple[int, int]] = []
    start: Optional[int] = None
    end = -1
    blank_streak = 0
    for pos, blank in enumerate(blank_flags):
        if blank:
            blank_streak += 1
            continue
        if start is None:
            start = pos
        elif blank_streak >= gap:
            runs.append((start + offset, end + offset))
            start = pos
        end = pos
        blank_streak = 0
    if start is not None:
        runs.append((start + offset, end + offset))
    return runs


def _regions(matrix: CellMatrix, bbox: BoundingBox, row_gap: int, col_gap: int) -> List[BoundingBox]:
    tight = _tighten_bbox(matrix, bbox)
    if tight is None:
        return []

    row_blank = [matrix.is_blank_row(r, tight.left, tight.right) for r in range(tight.top, tight.bottom + 1)]
    row_runs = _runs(row_blank, tight.top, row_gap)
    if len(row_runs) > 1:
        out: List[BoundingBox] = []
        for top, bottom in row_runs:
            out.extend(_regions(matrix, BoundingBox(top=top, left=tight.left, bottom=bottom, right=tight.right), row_gap, col_gap))
        return out

    col_blank = [matrix.is_blank_col(c, tight.top, tight.bottom) for c in range(tight.left, tight.right + 1)]
    col_runs = _runs(col_blank, tight.left, col_gap)
    if len(col_runs) > 1:
        out = []
        for left, right in col_runs:
            out.extend(_regions(matrix, BoundingBox(top=tight.top, left=left, bottom=tight.bottom, right=right), row_gap, col_gap))
        return out

    return [tight]


def detect_table_blocks(matrix: CellMatrix, settings: Optional[ApplicationSettings] = None) -> List[MatrixBlock]:
    """
    Split a matrix into candidate blocks, top-to-bottom then left-to-right.

    Regions smaller than the configured minimum are dropped. When nothing
    survives, the whole (tightened) matrix is returned as the only block.
    """
    settings = settings or get_settings()
    cfg = settings.blocks
    if matrix.is_empty:
        return []

    full = BoundingBox(top=0, left=0, bottom=matrix.row_count - 1, right=matrix.col_count - 1)
    regions = [
        bbox
        for bbox in _regions(matrix, full, max(cfg.block_row_gap, 1), max(cfg.block_col_gap, 1))
        if bbox.row_count >= cfg.block_min_rows and bbox.col_count >= cfg.block_min_cols
    ]
    if not regions:
        tight = _tighten_bbox(matrix, full)
        if tight is None:
            return []
        regions = [tight]

    return [
        MatrixBlock(
            id=f"block_{i + 1}",
            bbox=bbox,
            matrix=matrix.slice_region(bbox.top, bbox.left, bbox.bottom, bbox.right).normalize(),
        )
        for i, bbox in enumerate(regions)
    ]


# ---------------------------
# Language signals
# ---------------------------


def _script(ch: str) -> str:
    name = unicodedata.name(ch, "")
    if name.startswith("LATIN"):
        return "latin"
    if name.startswith(("HIRAGANA", "KATAKANA", "CJK UNIFIED", "HALFWIDTH KATAKANA")):
        return "japanese"
    return "other"


def _letter_counts(headers: Sequence[str], rows: Sequence[Sequence[str]], max_rows: int) -> Tuple[int, int, int]:
    latin = japanese = other = 0
    texts = list(headers)
    for row in list(rows)[:max_rows]:
        texts.extend(row)
    for text in texts:
        for ch in text or "":
            if not ch.isalpha():
                continue
            script = _script(ch)
            if script == "latin":
                latin += 1
            elif script == "japanese":
                japanese += 1
            else:
                other += 1
    return latin, japanese, other


def estimate_english_score(headers: Sequence[str], rows: Sequence[Sequence[str]], max_rows: int = 30) -> float:
    """Share of Latin letters among all letters; 0 below three Latin letters."""
    latin, japanese, other = _letter_counts(headers, rows, max_rows)
    total = latin + japanese + other
    if total == 0 or latin < 3:
        return 0.0
    return latin / total


def estimate_japanese_score(headers: Sequence[str], rows: Sequence[Sequence[str]], max_rows: int = 30) -> float:
    latin, japanese, _ = _letter_counts(headers, rows, max_rows)
    if latin + japanese == 0:
        return 0.0
    return japanese / (latin + japanese)


def detect_language_hint(
    english_score: float,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    max_rows: int = 30,
) -> LanguageHint:
    japanese_score = estimate_japanese_score(headers, rows, max_rows)
    if english_score >= 0.55 and english_score > japanese_score:
        return LanguageHint.ENGLISH
    if japanese_score >= 0.55 and japanese_score > english_score:
        return LanguageHint.JAPANESE
    if english_score > 0 or japanese_score > 0:
        return LanguageHint.MIXED
    return LanguageHint.UNKNOWN


# ---------------------------
# Selection
# ---------------------------


@dataclass(frozen=True)
class BlockCandidate:
    """Lightweight ranking signals for one block."""

    quality_score: float = 0.0
    row_count: int = 0
    column_count: int = 0
    english_score: float = 0.0
    header_plausibility: float = 0.0
    language_hint: LanguageHint = LanguageHint.UNKNOWN


def _normalize_count(value: int, cap: int) -> float:
    if value <= 0:
        return 0.0
    if value >= cap:
        return 1.0
    return value / cap


def composite_score(candidate: BlockCandidate, settings: Optional[ApplicationSettings] = None) -> float:
    cfg = (settings or get_settings()).blocks
    richness = (
        _normalize_count(candidate.row_count, cfg.row_norm_cap) * 0.6
        + _normalize_count(candidate.column_count, cfg.col_norm_cap) * 0.4
    )
    score = (
        candidate.quality_score * cfg.quality_weight
        + richness * cfg.richness_weight
        + candidate.header_plausibility * cfg.header_weight
    )
    if candidate.language_hint is LanguageHint.MIXED:
        score += candidate.english_score * cfg.english_weight
    return score


def select_preferred_block(
    candidates: Sequence[BlockCandidate],
    settings: Optional[ApplicationSettings] = None,
) -> int:
    """
    Index of the preferred candidate.

    Blocks with fewer data rows than the rich-row limit are skipped when a
    rich block exists, and narrow blocks are skipped when a rich wide block
    exists. The rest compete on the composite score; exact ties go to more
    data rows, then to the earlier block.
    """
    if not candidates:
        return 0
    cfg = (settings or get_settings()).blocks

    has_rich_rows = any(c.row_count >= cfg.rich_row_count for c in candidates)
    has_wide_block = any(
        c.row_count >= cfg.rich_row_count and c.column_count >= cfg.wide_col_count for c in candidates
    )

    selected: Optional[int] = None
    best = -1.0
    for idx, candidate in enumerate(candidates):
        if has_rich_rows and candidate.row_count < cfg.rich_row_count:
            continue
        if has_wide_block and candidate.column_count < cfg.wide_col_count:
            continue

        score = composite_score(candidate, settings)
        if selected is None or score > best + _TIE_EPSILON:
            selected, best = idx, score
        elif abs(score - best) <= _TIE_EPSILON and candidate.row_count > candidates[selected].row_count:
            selected = idx

    return 0 if selected is None else selected


@dataclass(frozen=True)
class AnalyzedBlock:
    """A candidate block with its header, mapping and quality."""

    block: Block
    matrix: CellMatrix
    headers: List[str]
    data_rows: List[List[str]]
    mapping: ColumnMappingResult
    quality: MappingQuality
    warnings: List[ConversionWarning] = field(default_factory=list)

    def candidate(self) -> BlockCandidate:
        return BlockCandidate(
            quality_score=self.quality.score,
            row_count=self.block.total_rows,
            column_count=self.block.total_columns,
            english_score=self.block.english_score,
            header_plausibility=self.block.header_plausibility,
            language_hint=self.block.language_hint,
        )


@dataclass(frozen=True)
class BlockSelection:
    candidates: List[AnalyzedBlock]
    selected_index: int = 0
    warnings: List[ConversionWarning] = field(default_factory=list)

    @property
    def selected(self) -> Optional[AnalyzedBlock]:
        if not self.candidates:
            return None
        return self.candidates[self.selected_index]

    @property
    def blocks(self) -> List[Block]:
        return [c.block for c in self.candidates]


class BlockSelector:
    """Detects, analyzes and ranks the blocks of a matrix."""

    def __init__(
        self,
        settings: Optional[ApplicationSettings] = None,
        mapper: Optional[ColumnMapper] = None,
        header_detector: Optional[HeaderDetector] = None,
    ):
        self.settings = settings or get_settings()
        self.mapper = mapper or ColumnMapper(self.settings)
        self.header_detector = header_detector or HeaderDetector(self.settings)

    def analyze_block(
        self,
        matrix_block: MatrixBlock,
        overrides: Optional[Mapping[str, Union[str, CanonicalField]]] = None,
        schema: Optional[MappingSchema] = None,
    ) -> AnalyzedBlock:
        matrix = matrix_block.matrix
        header_row, confidence = self.header_detector.detect_header_row(matrix)
        headers = matrix.get_row(header_row)
        data_rows = matrix.slice_rows(header_row + 1).to_lists()

        mapping = self.mapper.map_columns(headers, data_rows, overrides)
        quality = evaluate_mapping_quality(
            confidence,
            headers,
            mapping.column_map,
            schema=schema,
            rows=data_rows,
            columns=mapping.columns,
            settings=self.settings,
        )

        max_rows = self.settings.blocks.english_sample_rows
        english = estimate_english_score(headers, data_rows, max_rows)
        block = Block(
            id=matrix_block.id,
            bbox=matrix_block.bbox,
            range=matrix_block.bbox.to_a1(),
            header_row=header_row,
            total_rows=len(data_rows),
            total_columns=len(headers),
            language_hint=detect_language_hint(english, headers, data_rows, max_rows),
            english_score=english,
            confidence=confidence,
            header_plausibility=header_plausibility(headers),
            mapping_quality=quality,
        )

        warnings: List[ConversionWarning] = []
        low = self.header_detector.low_confidence_warning(confidence, header_row)
        if low is not None:
            warnings.append(low)
        warnings.extend(mapping.warnings)
        return AnalyzedBlock(
            block=block,
            matrix=matrix,
            headers=headers,
            data_rows=data_rows,
            mapping=mapping,
            quality=quality,
            warnings=warnings,
        )

    def select(
        self,
        matrix: CellMatrix,
        overrides: Optional[Mapping[str, Union[str, CanonicalField]]] = None,
        schema: Optional[MappingSchema] = None,
    ) -> BlockSelection:
        matrix_blocks = detect_table_blocks(matrix, self.settings)
        analyzed = [self.analyze_block(b, overrides, schema) for b in matrix_blocks]
        if not analyzed:
            return BlockSelection(candidates=[])

        selected = select_preferred_block([a.candidate() for a in analyzed], self.settings)
        warnings: List[ConversionWarning] = []
        if len(analyzed) > 1:
            chosen = analyzed[selected].block
            warnings.append(
                new_warning(
                    "DETECT_MULTIPLE_BLOCKS",
                    WarningSeverity.INFO,
                    WarningCategory.DETECT,
                    f"Found {len(analyzed)} table blocks; using {chosen.id} ({chosen.range}).",
                    hint="Select a different block in preview if the wrong table was picked.",
                    details={
                        "blocks": [a.block.id for a in analyzed],
                        "selected": chosen.id,
                        "range": chosen.range,
                    },
                )
            )
        logger.debug("Selected %s of %d block(s)", analyzed[selected].block.id, len(analyzed))
        return BlockSelection(candidates=analyzed, selected_index=selected, warnings=warnings)
