"""
Conversion models for the spec conversion engine.

These models describe every value that flows between the stages of the
pipeline: input analysis, candidate blocks, column mapping, mapping quality,
fallback decisions, canonical rows and the final preview/convert results.
All of them are derived per request and never persisted.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.exceptions.conversion import UnsupportedTemplateError


class CanonicalField(str, Enum):
    """Semantic target fields a specification document understands."""

    ID = "id"
    FEATURE = "feature"
    SCENARIO = "scenario"
    INSTRUCTIONS = "instructions"
    INPUTS = "inputs"
    EXPECTED = "expected"
    PRECONDITION = "precondition"
    PRIORITY = "priority"
    TYPE = "type"
    STATUS = "status"
    ENDPOINT = "endpoint"
    NOTES = "notes"
    # UI spec-table subset
    NO = "no"
    ITEM_NAME = "item_name"
    ITEM_TYPE = "item_type"
    REQUIRED_OPTIONAL = "required_optional"
    INPUT_RESTRICTIONS = "input_restrictions"
    DISPLAY_CONDITIONS = "display_conditions"
    ACTION = "action"
    NAVIGATION_DESTINATION = "navigation_destination"

    @property
    def label(self) -> str:
        """Display name, e.g. ``ItemName``."""
        if self is CanonicalField.ID:
            return "ID"
        return "".join(part.capitalize() for part in self.value.split("_"))

    @classmethod
    def parse(cls, value: Any) -> Optional["CanonicalField"]:
        """Resolve a value (``expected``), member name (``EXPECTED``) or label (``Expected``)."""
        if isinstance(value, CanonicalField):
            return value
        if not isinstance(value, str):
            return None
        key = re.sub(r"[^a-z0-9]", "", value.lower())
        if not key:
            return None
        for member in cls:
            if key == member.value.replace("_", ""):
                return member
        return None


ColumnMap = Dict[CanonicalField, int]


class MappingSchema(str, Enum):
    """Core-field schema used to score a column map."""

    SPEC = "spec"
    SPEC_TABLE = "spec-table"

    @property
    def core_fields(self) -> Tuple[CanonicalField, ...]:
        return CORE_FIELDS[self]


CORE_FIELDS: Dict[MappingSchema, Tuple[CanonicalField, ...]] = {
    MappingSchema.SPEC: (
        CanonicalField.SCENARIO,
        CanonicalField.FEATURE,
        CanonicalField.INSTRUCTIONS,
        CanonicalField.EXPECTED,
    ),
    MappingSchema.SPEC_TABLE: (
        CanonicalField.NO,
        CanonicalField.ITEM_NAME,
        CanonicalField.ITEM_TYPE,
        CanonicalField.DISPLAY_CONDITIONS,
        CanonicalField.ACTION,
        CanonicalField.NAVIGATION_DESTINATION,
    ),
}


class OutputFormat(str, Enum):
    """The only two renderer inputs."""

    SPEC = "spec"
    TABLE = "table"

    @classmethod
    def parse(cls, name: Union[str, "OutputFormat", None]) -> "OutputFormat":
        """Strictly resolve a template name; legacy aliases are rejected."""
        if isinstance(name, OutputFormat):
            return name
        supported = [member.value for member in cls]
        if isinstance(name, str) and name in supported:
            return cls(name)
        raise UnsupportedTemplateError(name, supported)


class InputType(str, Enum):
    MARKDOWN = "markdown"
    TABLE = "table"
    AMBIGUOUS = "ambiguous"


class LanguageHint(str, Enum):
    ENGLISH = "english"
    JAPANESE = "japanese"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class WarningSeverity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class WarningCategory(str, Enum):
    INPUT = "input"
    DETECT = "detect"
    HEADER = "header"
    MAPPING = "mapping"
    ROWS = "rows"
    RENDER = "render"


class ConversionWarning(BaseModel):
    """Non-fatal finding surfaced verbatim to the caller."""

    code: str
    message: str
    severity: WarningSeverity = WarningSeverity.INFO
    category: WarningCategory
    hint: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", frozen=True)


def new_warning(
    code: str,
    severity: WarningSeverity,
    category: WarningCategory,
    message: str,
    hint: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ConversionWarning:
    return ConversionWarning(
        code=code,
        message=message,
        severity=severity,
        category=category,
        hint=hint,
        details=dict(details or {}),
    )


class InputAnalysis(BaseModel):
    """Classification of raw pasted text."""

    input_type: InputType
    confidence: int = Field(..., ge=0, le=100)
    reason: str = ""
    markdown_score: int = 0
    table_score: int = 0

    model_config = ConfigDict(extra="ignore")


class DelimiterDetection(BaseModel):
    """Result of delimiter inference over pasted lines."""

    delimiter: str
    consistent: bool
    consistency: float = Field(default=0.0, ge=0.0, le=1.0, description="Share of lines with the modal count")
    columns: int = Field(default=1, ge=1, description="Columns implied by the modal delimiter count")
    warnings: List[ConversionWarning] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class BoundingBox(BaseModel):
    """0-based inclusive bounding box."""

    top: int = Field(..., ge=0)
    left: int = Field(..., ge=0)
    bottom: int = Field(..., ge=0)
    right: int = Field(..., ge=0)

    model_config = ConfigDict(extra="ignore")

    @property
    def row_count(self) -> int:
        return self.bottom - self.top + 1

    @property
    def col_count(self) -> int:
        return self.right - self.left + 1

    def to_a1(self) -> str:
        return f"{column_letter(self.left)}{self.top + 1}:{column_letter(self.right)}{self.bottom + 1}"


def column_letter(index: int) -> str:
    """0-based column index to spreadsheet letters (0 -> A, 26 -> AA)."""
    out = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        out = chr(ord("A") + rem) + out
    return out


class ColumnAssignment(BaseModel):
    """How one source column was (or was not) mapped."""

    index: int = Field(..., ge=0)
    header: str
    field: Optional[CanonicalField] = None
    source: Literal["override", "static", "inferred", "unmapped"] = "unmapped"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ColumnMappingResult(BaseModel):
    """Output of the column mapper."""

    column_map: Dict[CanonicalField, int] = Field(default_factory=dict)
    unmapped_headers: List[str] = Field(default_factory=list)
    columns: List[ColumnAssignment] = Field(default_factory=list)
    warnings: List[ConversionWarning] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def header_mapping(self, headers: List[str]) -> Dict[str, str]:
        """Source header -> canonical field value, for UI display."""
        return {
            headers[idx]: field.value
            for field, idx in sorted(self.column_map.items(), key=lambda item: item[1])
            if 0 <= idx < len(headers)
        }


class MappingQuality(BaseModel):
    """Aggregate confidence of a column map, recomputed on every call."""

    score: float = Field(default=0.0, ge=0.0, le=1.0)
    header_score: float = Field(default=0.0, ge=0.0, le=1.0)
    mapped_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    core_mapped: int = Field(default=0, ge=0)
    core_coverage: float = Field(default=0.0, ge=0.0, le=1.0)
    mapping_schema: MappingSchema = MappingSchema.SPEC
    recommended_format: OutputFormat = OutputFormat.SPEC
    low_confidence_columns: List[str] = Field(default_factory=list)
    column_confidence: Dict[str, float] = Field(default_factory=dict)
    column_reasons: Dict[str, List[str]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class FallbackDecision(BaseModel):
    """Whether a requested spec should degrade to a plain table."""

    requested_format: OutputFormat
    recommended_format: OutputFormat
    fallback: bool
    reason: str = ""

    model_config = ConfigDict(extra="ignore")


class Block(BaseModel):
    """A candidate rectangular data region of a cell matrix."""

    id: str
    bbox: BoundingBox
    range: str = Field(..., description="A1-style range of the block in the source matrix")
    header_row: int = Field(default=0, ge=0, description="Header row index within the block")
    total_rows: int = Field(default=0, ge=0, description="Data rows below the header")
    total_columns: int = Field(default=0, ge=0)
    language_hint: LanguageHint = LanguageHint.UNKNOWN
    english_score: float = Field(default=0.0, ge=0.0, le=1.0)
    confidence: int = Field(default=0, ge=0, le=100, description="Header-row confidence")
    header_plausibility: float = Field(default=0.0, ge=0.0, le=1.0)
    mapping_quality: Optional[MappingQuality] = None

    model_config = ConfigDict(extra="ignore")


class CanonicalRow(BaseModel):
    """One data row re-indexed through a column map."""

    source_index: int = Field(default=0, ge=0)
    values: Dict[CanonicalField, str] = Field(default_factory=dict)
    extras: Dict[str, str] = Field(default_factory=dict, description="Unmapped source header -> value")

    model_config = ConfigDict(extra="ignore")

    def get(self, field: CanonicalField) -> str:
        return self.values.get(field, "")


class CanonicalTable(BaseModel):
    """Rows ready for rendering plus the metadata renderers need."""

    title: str = ""
    headers: List[str] = Field(default_factory=list)
    column_map: Dict[CanonicalField, int] = Field(default_factory=dict)
    rows: List[CanonicalRow] = Field(default_factory=list)
    source_rows: List[List[str]] = Field(default_factory=list, description="Raw data rows kept for table output")

    model_config = ConfigDict(extra="ignore")

    @property
    def extra_headers(self) -> List[str]:
        mapped = set(self.column_map.values())
        return [h for i, h in enumerate(self.headers) if i not in mapped and h.strip()]


class ProseSection(BaseModel):
    """A heading-delimited section of markdown input."""

    heading: str
    level: int = Field(default=2, ge=1, le=6)
    content: str = ""

    model_config = ConfigDict(extra="ignore")


class PreviewResult(BaseModel):
    """Everything a caller needs before deciding how to render."""

    input_type: InputType
    input_analysis: Optional[InputAnalysis] = None
    delimiter: Optional[str] = None
    blocks: List[Block] = Field(default_factory=list)
    selected_block_id: Optional[str] = None
    headers: List[str] = Field(default_factory=list)
    header_row: int = -1
    header_confidence: int = Field(default=0, ge=0, le=100)
    column_mapping: Dict[str, str] = Field(default_factory=dict, description="Source header -> canonical field")
    unmapped_headers: List[str] = Field(default_factory=list)
    total_rows: int = 0
    preview_rows: List[List[str]] = Field(default_factory=list)
    quality: Optional[MappingQuality] = None
    fallback: Optional[FallbackDecision] = None
    sections: List[ProseSection] = Field(default_factory=list)
    warnings: List[ConversionWarning] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ConvertResult(BaseModel):
    """Rendered markdown plus the annotations describing how it was produced."""

    markdown: str
    requested_format: OutputFormat
    output_format: OutputFormat
    input_type: InputType
    total_items: int = 0
    fell_back: bool = False
    preview: PreviewResult
    warnings: List[ConversionWarning] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
