"""
Column mapper: header row -> canonical fields.

Mapping runs as ordered phases over the columns:

1. explicit reviewer overrides (never overwritten),
2. static alias lookup (exact, case-insensitive, first occurrence wins),
3. dynamic inference from header keywords and sampled cell values, applied
   only to columns the earlier phases left unmapped; each field goes to its
   best-scoring column.

Nothing here raises for empty headers or rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from converter.services.field_vocabulary import (
    NOTE_TOKENS,
    has_header_keyword,
    is_action_like,
    is_numeric_like,
    is_priority_like,
    is_required_like,
    is_status_like,
    is_url_like,
    lookup_alias,
    normalize_header,
)
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import (
    CanonicalField,
    ColumnAssignment,
    ColumnMap,
    ColumnMappingResult,
    ConversionWarning,
    WarningCategory,
    WarningSeverity,
    new_warning,
)
from shared.utils.app_logger import get_logger

logger = get_logger(__name__)

F = CanonicalField

LONG_TEXT_FIELDS = frozenset(
    {F.INSTRUCTIONS, F.EXPECTED, F.DISPLAY_CONDITIONS, F.INPUT_RESTRICTIONS}
)

EXACT_MATCH_REASON = "Exact synonym match"
OVERRIDE_REASON = "Manual override"
UNMAPPED_REASONS = ("Unmapped column", "No reliable canonical match")


@dataclass(frozen=True)
class ColumnStats:
    """Share of sampled non-empty values matching each value pattern."""

    samples: int = 0
    url_ratio: float = 0.0
    numeric_ratio: float = 0.0
    long_text_ratio: float = 0.0
    status_ratio: float = 0.0
    priority_ratio: float = 0.0
    required_ratio: float = 0.0
    action_ratio: float = 0.0
    note_ratio: float = 0.0


def collect_column_stats(
    rows: Optional[Sequence[Sequence[str]]],
    col_idx: int,
    settings: Optional[ApplicationSettings] = None,
) -> ColumnStats:
    settings = settings or get_settings()
    cfg = settings.mapping
    counts = {"url": 0, "numeric": 0, "long": 0, "status": 0, "priority": 0, "required": 0, "action": 0, "note": 0}
    samples = 0
    for row in list(rows or [])[: cfg.sample_rows]:
        if col_idx >= len(row):
            continue
        value = (row[col_idx] or "").strip()
        if not value or value == "-":
            continue
        samples += 1
        lower = value.lower()
        counts["url"] += is_url_like(lower)
        counts["numeric"] += is_numeric_like(lower)
        counts["long"] += len(value) >= cfg.long_text_length
        counts["status"] += is_status_like(lower)
        counts["priority"] += is_priority_like(lower)
        counts["required"] += is_required_like(lower)
        counts["action"] += is_action_like(lower)
        counts["note"] += any(token in lower for token in NOTE_TOKENS)

    if samples == 0:
        return ColumnStats()
    return ColumnStats(
        samples=samples,
        url_ratio=counts["url"] / samples,
        numeric_ratio=counts["numeric"] / samples,
        long_text_ratio=counts["long"] / samples,
        status_ratio=counts["status"] / samples,
        priority_ratio=counts["priority"] / samples,
        required_ratio=counts["required"] / samples,
        action_ratio=counts["action"] / samples,
        note_ratio=counts["note"] / samples,
    )


def score_candidate(
    field: CanonicalField,
    normalized_header: str,
    stats: ColumnStats,
    settings: Optional[ApplicationSettings] = None,
) -> float:
    """Inference score in [0, 1] for one (header, field) pair."""
    settings = settings or get_settings()
    score = 0.0
    if has_header_keyword(normalized_header, field):
        score += settings.mapping.keyword_weight

    if field is F.ENDPOINT:
        score += stats.url_ratio * 0.45
    elif field is F.STATUS:
        score += stats.status_ratio * 0.35
    elif field is F.PRIORITY:
        score += stats.priority_ratio * 0.35
    elif field is F.REQUIRED_OPTIONAL:
        score += stats.required_ratio * 0.40
    elif field is F.ACTION:
        score += stats.action_ratio * 0.35
    elif field in (F.NO, F.ID):
        score += stats.numeric_ratio * 0.35
    elif field in LONG_TEXT_FIELDS:
        score += stats.long_text_ratio * 0.20
    elif field is F.NOTES:
        score += stats.note_ratio * 0.40

    return min(score, 1.0)


def estimate_field_confidence(
    header: str,
    field: CanonicalField,
    stats: ColumnStats,
    settings: Optional[ApplicationSettings] = None,
) -> Tuple[float, List[str]]:
    """Confidence and human-readable reasons for a mapped column."""
    settings = settings or get_settings()
    if lookup_alias(header) is field:
        return 1.0, [EXACT_MATCH_REASON]

    normalized = normalize_header(header)
    reasons: List[str] = []
    if has_header_keyword(normalized, field):
        reasons.append("Header keyword match")
    else:
        reasons.append("Weak header keyword signal")

    score = score_candidate(field, normalized, stats, settings)
    if stats.samples < 2:
        reasons.append("Limited sample rows")
    if field in (F.INSTRUCTIONS, F.EXPECTED) and stats.long_text_ratio < 0.25:
        reasons.append("Cell pattern weak for long-text field")
    if field is F.STATUS and stats.status_ratio < 0.25:
        reasons.append("Few status-like values")
    if field is F.PRIORITY and stats.priority_ratio < 0.25:
        reasons.append("Few priority-like values")

    if score <= 0:
        return settings.mapping.unscored_confidence, reasons
    return min(score, 1.0), reasons


@dataclass(frozen=True)
class FieldMatch:
    field: CanonicalField
    confidence: float
    reasons: Tuple[str, ...] = ()


class StaticAliasMatcher:
    """Phase 1: exact alias lookup."""

    source = "static"

    def match(
        self,
        header: str,
        col_idx: int,
        rows: Sequence[Sequence[str]],
        available: Set[CanonicalField],
    ) -> Optional[FieldMatch]:
        field = lookup_alias(header)
        if field is None:
            return None
        return FieldMatch(field=field, confidence=1.0, reasons=(EXACT_MATCH_REASON,))


class InferenceMatcher:
    """Phase 2: header keywords plus cell-value patterns."""

    source = "inferred"

    def __init__(self, settings: Optional[ApplicationSettings] = None):
        self.settings = settings or get_settings()

    def rank(
        self,
        header: str,
        col_idx: int,
        rows: Sequence[Sequence[str]],
        available: Set[CanonicalField],
    ) -> Tuple[Optional[Tuple[CanonicalField, float]], Optional[Tuple[CanonicalField, float]], ColumnStats]:
        stats = collect_column_stats(rows, col_idx, self.settings)
        normalized = normalize_header(header)
        best: Optional[Tuple[CanonicalField, float]] = None
        second: Optional[Tuple[CanonicalField, float]] = None
        for field in CanonicalField:
            if field not in available:
                continue
            score = score_candidate(field, normalized, stats, self.settings)
            if score <= 0:
                continue
            if best is None or score > best[1]:
                second, best = best, (field, score)
            elif second is None or score > second[1]:
                second = (field, score)
        return best, second, stats

    def match(
        self,
        header: str,
        col_idx: int,
        rows: Sequence[Sequence[str]],
        available: Set[CanonicalField],
    ) -> Optional[FieldMatch]:
        cfg = self.settings.mapping
        best, second, stats = self.rank(header, col_idx, rows, available)
        if best is None or best[1] < cfg.inference_threshold:
            return None
        if second is not None and best[1] - second[1] < cfg.inference_margin:
            logger.debug("Ambiguous inference for %r: %s vs %s", header, best, second)
            return None

        confidence, reasons = estimate_field_confidence(header, best[0], stats, self.settings)
        return FieldMatch(field=best[0], confidence=confidence, reasons=tuple(reasons))


MatcherStrategy = Union[StaticAliasMatcher, InferenceMatcher]


class ColumnMapper:
    """Maps a header row onto canonical fields."""

    def __init__(
        self,
        settings: Optional[ApplicationSettings] = None,
        strategies: Optional[Iterable[MatcherStrategy]] = None,
    ):
        self.settings = settings or get_settings()
        self.strategies: Tuple[MatcherStrategy, ...] = tuple(
            strategies if strategies is not None else (StaticAliasMatcher(), InferenceMatcher(self.settings))
        )

    def map_columns(
        self,
        headers: Optional[Sequence[str]],
        rows: Optional[Sequence[Sequence[str]]] = None,
        overrides: Optional[Mapping[str, Union[str, CanonicalField]]] = None,
        preset: Optional[ColumnMap] = None,
    ) -> ColumnMappingResult:
        headers = [h if isinstance(h, str) else ("" if h is None else str(h)) for h in (headers or [])]
        rows = [list(r) for r in (rows or [])]
        warnings: List[ConversionWarning] = []
        column_map: Dict[CanonicalField, int] = {}
        assigned: Dict[int, ColumnAssignment] = {}

        def assign(idx: int, field: CanonicalField, source: str, confidence: float, reasons: Iterable[str]) -> None:
            column_map[field] = idx
            assigned[idx] = ColumnAssignment(
                index=idx,
                header=headers[idx],
                field=field,
                source=source,
                confidence=max(0.0, min(confidence, 1.0)),
                reasons=list(reasons),
            )

        for field, idx in (preset or {}).items():
            field = CanonicalField.parse(field)
            if field is None or not isinstance(idx, int) or not 0 <= idx < len(headers):
                continue
            if field in column_map or idx in assigned:
                continue
            assign(idx, field, "override", 1.0, [OVERRIDE_REASON])

        self._apply_overrides(headers, overrides or {}, column_map, assigned, assign, warnings)

        for strategy in self.strategies:
            if strategy.source == "inferred":
                self._assign_best_first(strategy, headers, rows, column_map, assigned, assign, warnings)
                continue
            for idx, header in enumerate(headers):
                if idx in assigned:
                    continue
                available = {f for f in CanonicalField if f not in column_map}
                found = strategy.match(header, idx, rows, available)
                if found is None:
                    continue
                if found.field in column_map:
                    first = headers[column_map[found.field]]
                    warnings.append(
                        new_warning(
                            "MAPPING_DUPLICATE_FIELD",
                            WarningSeverity.INFO,
                            WarningCategory.HEADER,
                            f"Column '{header}' also matches {found.field.label}; keeping '{first}'.",
                            hint="Rename or remove the duplicate column.",
                            details={"field": found.field.value, "header": header, "kept_header": first},
                        )
                    )
                    continue
                assign(idx, found.field, strategy.source, found.confidence, found.reasons)

        columns: List[ColumnAssignment] = []
        unmapped: List[str] = []
        for idx, header in enumerate(headers):
            if idx in assigned:
                columns.append(assigned[idx])
                continue
            unmapped.append(header)
            columns.append(ColumnAssignment(index=idx, header=header, reasons=list(UNMAPPED_REASONS)))

        named_unmapped = [h for h in unmapped if h.strip()]
        if named_unmapped:
            warnings.append(
                new_warning(
                    "MAPPING_UNMAPPED_COLUMNS",
                    WarningSeverity.INFO,
                    WarningCategory.MAPPING,
                    f"{len(named_unmapped)} column(s) could not be mapped to a canonical field.",
                    hint="Unmapped columns are kept as additional fields.",
                    details={"headers": named_unmapped},
                )
            )

        return ColumnMappingResult(
            column_map=column_map,
            unmapped_headers=unmapped,
            columns=columns,
            warnings=warnings,
        )

    @staticmethod
    def _assign_best_first(strategy, headers, rows, column_map, assigned, assign, warnings) -> None:
        """
        Each field goes to its best-scoring column.

        Every round re-ranks the still unmapped columns against the still free
        fields and assigns the single strongest match (leftmost column on ties),
        so a column that loses its first choice can still take another field.
        """
        while True:
            available = {f for f in CanonicalField if f not in column_map}
            best: Optional[Tuple[int, FieldMatch]] = None
            for idx, header in enumerate(headers):
                if idx in assigned:
                    continue
                found = strategy.match(header, idx, rows, available)
                if found is not None and (best is None or found.confidence > best[1].confidence):
                    best = (idx, found)
            if best is None:
                return

            idx, found = best
            header = headers[idx]
            assign(idx, found.field, strategy.source, found.confidence, found.reasons)
            logger.debug("Inferred %s for column %r (%.2f)", found.field.value, header, found.confidence)
            warnings.append(
                new_warning(
                    "MAPPING_DYNAMIC_INFERENCE",
                    WarningSeverity.INFO,
                    WarningCategory.MAPPING,
                    f"Inferred '{header}' as {found.field.label} ({found.confidence:.2f}).",
                    hint="Review inferred mappings in preview if output looks unusual.",
                    details={
                        "field": found.field.value,
                        "header": header,
                        "column_index": idx,
                        "confidence": round(found.confidence, 4),
                        "reasons": list(found.reasons),
                    },
                )
            )

    @staticmethod
    def _apply_overrides(headers, overrides, column_map, assigned, assign, warnings) -> None:
        for header_key, field_name in overrides.items():
            field = CanonicalField.parse(field_name)
            key = (header_key or "").strip()
            idx = next(
                (i for i, h in enumerate(headers) if (h == header_key or h.strip() == key) and i not in assigned),
                None,
            )
            problem = None
            if field is None:
                problem = f"unknown field '{field_name}'"
            elif idx is None:
                problem = f"no column named '{header_key}'"
            elif field in column_map:
                problem = f"{field.label} is already assigned"
            if problem:
                warnings.append(
                    new_warning(
                        "MAPPING_OVERRIDE_INVALID",
                        WarningSeverity.WARN,
                        WarningCategory.MAPPING,
                        f"Ignored column override for '{header_key}': {problem}.",
                        details={"header": header_key, "field": str(field_name)},
                    )
                )
                continue
            assign(idx, field, "override", 1.0, [OVERRIDE_REASON])


def map_columns(
    headers: Optional[Sequence[str]],
    rows: Optional[Sequence[Sequence[str]]] = None,
    overrides: Optional[Mapping[str, Union[str, CanonicalField]]] = None,
    settings: Optional[ApplicationSettings] = None,
) -> ColumnMappingResult:
    return ColumnMapper(settings).map_columns(headers, rows, overrides)
