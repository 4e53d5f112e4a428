"""
Shared model definitions for the spec conversion engine
"""

from .conversion import (
    CORE_FIELDS,
    Block,
    BoundingBox,
    CanonicalField,
    CanonicalRow,
    CanonicalTable,
    ColumnAssignment,
    ColumnMap,
    ColumnMappingResult,
    ConversionWarning,
    ConvertResult,
    DelimiterDetection,
    FallbackDecision,
    InputAnalysis,
    InputType,
    LanguageHint,
    MappingQuality,
    MappingSchema,
    OutputFormat,
    PreviewResult,
    ProseSection,
    WarningCategory,
    WarningSeverity,
    new_warning,
)

__all__ = [
    "CORE_FIELDS",
    "Block",
    "BoundingBox",
    "CanonicalField",
    "CanonicalRow",
    "CanonicalTable",
    "ColumnAssignment",
    "ColumnMap",
    "ColumnMappingResult",
    "ConversionWarning",
    "ConvertResult",
    "DelimiterDetection",
    "FallbackDecision",
    "InputAnalysis",
    "InputType",
    "LanguageHint",
    "MappingQuality",
    "MappingSchema",
    "OutputFormat",
    "PreviewResult",
    "ProseSection",
    "WarningCategory",
    "WarningSeverity",
    "new_warning",
]
