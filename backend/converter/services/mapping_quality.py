"""
Mapping quality evaluation and the spec -> table fallback decision.

The core-field set is always explicit: callers pass the schema in play, or
let the evaluator pick the schema the column map covers best and record which
one it used.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from converter.services.column_mapper import UNMAPPED_REASONS, collect_column_stats, estimate_field_confidence
from shared.config.settings import ApplicationSettings, get_settings
from shared.models.conversion import (
    CORE_FIELDS,
    CanonicalField,
    ColumnAssignment,
    ColumnMap,
    ConversionWarning,
    FallbackDecision,
    MappingQuality,
    MappingSchema,
    OutputFormat,
    WarningCategory,
    WarningSeverity,
    new_warning,
)
from shared.utils.app_logger import get_logger

logger = get_logger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def count_core_mapped(column_map: Mapping[CanonicalField, int], core_fields: Iterable[CanonicalField]) -> int:
    return sum(1 for field in core_fields if field in column_map)


def best_schema(column_map: Mapping[CanonicalField, int]) -> MappingSchema:
    """Schema whose core set the map covers best; SPEC wins ties."""
    best = MappingSchema.SPEC
    best_coverage = -1.0
    for schema in MappingSchema:
        fields = CORE_FIELDS[schema]
        coverage = count_core_mapped(column_map, fields) / len(fields)
        if coverage > best_coverage:
            best, best_coverage = schema, coverage
    return best


def evaluate_mapping_quality(
    header_confidence: Union[int, float],
    headers: Optional[Sequence[str]],
    column_map: Optional[ColumnMap],
    *,
    schema: Optional[Union[MappingSchema, str]] = None,
    rows: Optional[Sequence[Sequence[str]]] = None,
    columns: Optional[Sequence[ColumnAssignment]] = None,
    settings: Optional[ApplicationSettings] = None,
) -> MappingQuality:
    """
    Compute aggregate and per-column mapping quality.

    Args:
        header_confidence: header-row confidence, 0-100
        headers: source header row
        column_map: canonical field -> column index
        schema: active core-field schema; chosen from the map when omitted
        rows: sample data rows, used for per-column confidence
        columns: per-column assignments from the mapper; when given their
            confidence/reasons are reused instead of being re-estimated
    """
    settings = settings or get_settings()
    cfg = settings.mapping
    headers = list(headers or [])
    column_map = {
        field: idx
        for field, idx in (column_map or {}).items()
        if isinstance(idx, int) and 0 <= idx < len(headers)
    }

    active = MappingSchema(schema) if schema is not None else best_schema(column_map)
    core_fields = CORE_FIELDS[active]

    header_score = _clamp(float(header_confidence or 0) / 100.0)
    core_mapped = count_core_mapped(column_map, core_fields)
    core_coverage = core_mapped / len(core_fields)
    mapped_ratio = _clamp(len(column_map) / len(headers)) if headers else 0.0
    score = _clamp(
        header_score * cfg.quality_header_weight
        + core_coverage * cfg.quality_core_weight
        + mapped_ratio * cfg.quality_mapped_weight
    )

    confidence: Dict[str, float] = {}
    reasons: Dict[str, List[str]] = {}
    low = set()
    by_index = {c.index: c for c in (columns or []) if c.field is not None}
    field_by_index = {idx: field for field, idx in column_map.items()}

    for idx, header in enumerate(headers):
        field = field_by_index.get(idx)
        if field is None:
            if header in confidence:
                continue
            confidence[header] = 0.0
            reasons[header] = list(UNMAPPED_REASONS)
            low.add(header)
            continue

        known = by_index.get(idx)
        if known is not None and known.field is field:
            conf, why = known.confidence, list(known.reasons)
        else:
            stats = collect_column_stats(rows, idx, settings)
            conf, why = estimate_field_confidence(header, field, stats, settings)
        confidence[header] = conf
        if why:
            reasons[header] = why
        if conf < cfg.low_confidence_threshold:
            low.add(header)
        else:
            low.discard(header)

    quality = MappingQuality(
        score=score,
        header_score=header_score,
        mapped_ratio=mapped_ratio,
        core_mapped=core_mapped,
        core_coverage=core_coverage,
        mapping_schema=active,
        low_confidence_columns=sorted(low),
        column_confidence=confidence,
        column_reasons=reasons,
    )
    recommended = OutputFormat.TABLE if should_fallback_to_table(OutputFormat.SPEC, quality, settings) else OutputFormat.SPEC
    return quality.model_copy(update={"recommended_format": recommended})


def should_fallback_to_table(
    template: Union[OutputFormat, str],
    quality: MappingQuality,
    settings: Optional[ApplicationSettings] = None,
) -> bool:
    """
    True when a requested spec should be rendered as a plain table instead.

    Only the spec template can fall back. It does when no core field is mapped,
    or when the mapped ratio and the core coverage are both low.
    """
    if template != OutputFormat.SPEC and template != OutputFormat.SPEC.value:
        return False
    if quality.core_mapped == 0:
        return True
    cfg = (settings or get_settings()).mapping
    return quality.mapped_ratio < cfg.fallback_mapped_ratio and quality.core_coverage < cfg.fallback_core_coverage


def decide_fallback(
    template: Union[OutputFormat, str],
    quality: MappingQuality,
    settings: Optional[ApplicationSettings] = None,
) -> FallbackDecision:
    requested = OutputFormat.parse(template)
    if not should_fallback_to_table(requested, quality, settings):
        return FallbackDecision(requested_format=requested, recommended_format=requested, fallback=False)

    if quality.core_mapped == 0:
        reason = "No core fields mapped"
    else:
        reason = "Low mapped ratio and low core coverage"
    logger.debug("Fallback to table: %s (score %.2f)", reason, quality.score)
    return FallbackDecision(
        requested_format=requested,
        recommended_format=OutputFormat.TABLE,
        fallback=True,
        reason=reason,
    )


def fallback_warning(quality: MappingQuality, decision: FallbackDecision) -> ConversionWarning:
    return new_warning(
        "MAPPING_LOW_CONFIDENCE_TABLE_FALLBACK",
        WarningSeverity.WARN,
        WarningCategory.MAPPING,
        f"Column mapping is too weak for a spec document ({decision.reason.lower()}); rendered as a table.",
        hint="Rename headers to known names or provide column overrides to get a spec document.",
        details={
            "quality_score": round(quality.score, 4),
            "mapped_ratio": round(quality.mapped_ratio, 4),
            "core_field_count": quality.core_mapped,
            "core_coverage": round(quality.core_coverage, 4),
            "schema": quality.mapping_schema.value,
        },
    )
