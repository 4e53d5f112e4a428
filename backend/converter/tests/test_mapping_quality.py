import pytest

from converter.services.column_mapper import map_columns
from converter.services.mapping_quality import (
    best_schema,
    decide_fallback,
    evaluate_mapping_quality,
    fallback_warning,
    should_fallback_to_table,
)
from shared.exceptions import UnsupportedTemplateError
from shared.models.conversion import CanonicalField, MappingQuality, MappingSchema, OutputFormat

F = CanonicalField

SPEC_TABLE_HEADERS = ["No", "Item Name", "Item Type", "Display Conditions", "Action", "Navigation Destination"]
SPEC_HEADERS = ["Feature", "Scenario", "Instructions", "Expected"]


class TestEvaluateMappingQuality:
    def test_spec_table_headers_score_high(self):
        column_map = map_columns(SPEC_TABLE_HEADERS).column_map
        quality = evaluate_mapping_quality(80, SPEC_TABLE_HEADERS, column_map)

        assert quality.mapping_schema == MappingSchema.SPEC_TABLE
        assert quality.core_mapped == 6
        assert quality.core_coverage >= 0.9
        assert quality.mapped_ratio == 1.0
        assert quality.score >= 0.55
        assert quality.score == pytest.approx(0.92)
        assert quality.recommended_format == OutputFormat.SPEC
        assert quality.low_confidence_columns == []

    @pytest.mark.parametrize(
        "headers,schema",
        [(SPEC_HEADERS, MappingSchema.SPEC), (SPEC_TABLE_HEADERS, MappingSchema.SPEC_TABLE)],
    )
    def test_exact_core_aliases_are_fully_covered(self, headers, schema):
        column_map = map_columns(headers).column_map
        quality = evaluate_mapping_quality(100, headers, column_map, schema=schema)
        assert quality.core_mapped == len(headers)
        assert quality.core_coverage >= 0.9

    def test_schemas_do_not_mix(self):
        column_map = map_columns(SPEC_TABLE_HEADERS).column_map
        quality = evaluate_mapping_quality(80, SPEC_TABLE_HEADERS, column_map, schema=MappingSchema.SPEC)

        assert quality.mapping_schema == MappingSchema.SPEC
        assert quality.core_mapped == 0
        assert quality.core_coverage == 0.0
        assert quality.recommended_format == OutputFormat.TABLE

    def test_empty_headers(self):
        quality = evaluate_mapping_quality(0, [], {})
        assert quality.mapped_ratio == 0.0
        assert quality.score == 0.0
        assert quality.column_confidence == {}

    def test_out_of_range_indexes_are_ignored(self):
        quality = evaluate_mapping_quality(50, ["Feature"], {F.FEATURE: 0, F.SCENARIO: 7})
        assert quality.core_mapped == 1
        assert quality.mapped_ratio == 1.0

    def test_per_column_confidence(self):
        headers = ["Scenario", "Current State", "Owner"]
        rows = [["Login", "open", "Al"], ["Logout", "done", "Bo"]]
        mapping = map_columns(headers, rows)
        quality = evaluate_mapping_quality(60, headers, mapping.column_map, rows=rows, columns=mapping.columns)

        assert quality.column_confidence["Scenario"] == 1.0
        assert quality.column_confidence["Current State"] == pytest.approx(0.97)
        assert quality.column_confidence["Owner"] == 0.0
        assert quality.low_confidence_columns == ["Owner"]
        assert quality.column_reasons["Owner"] == ["Unmapped column", "No reliable canonical match"]
        assert quality.column_reasons["Scenario"] == ["Exact synonym match"]

    def test_weak_mapped_column_is_flagged(self):
        quality = evaluate_mapping_quality(60, ["Foo"], {F.STATUS: 0}, rows=[["x"]])

        assert quality.column_confidence["Foo"] == 0.45
        assert quality.low_confidence_columns == ["Foo"]
        assert "Weak header keyword signal" in quality.column_reasons["Foo"]
        assert "Few status-like values" in quality.column_reasons["Foo"]

    def test_best_schema_prefers_spec_on_tie(self):
        assert best_schema({}) == MappingSchema.SPEC
        assert best_schema({F.ACTION: 0}) == MappingSchema.SPEC_TABLE


class TestFallbackDecision:
    @pytest.mark.parametrize(
        "quality",
        [
            MappingQuality(),
            MappingQuality(core_mapped=0, mapped_ratio=0.0, score=0.0),
            MappingQuality(core_mapped=4, core_coverage=1.0, mapped_ratio=1.0, score=1.0),
        ],
    )
    def test_table_never_falls_back(self, quality):
        assert should_fallback_to_table("table", quality) is False
        assert should_fallback_to_table(OutputFormat.TABLE, quality) is False

    def test_no_core_fields_always_falls_back(self):
        quality = MappingQuality(core_mapped=0, core_coverage=0.0, mapped_ratio=1.0, score=0.6)
        assert should_fallback_to_table("spec", quality) is True

    @pytest.mark.parametrize("mapped_ratio", [0.2, 0.5, 0.6])
    def test_full_core_coverage_keeps_spec(self, mapped_ratio):
        quality = MappingQuality(core_mapped=4, core_coverage=1.0, mapped_ratio=mapped_ratio, score=0.7)
        assert should_fallback_to_table("spec", quality) is False

    def test_low_ratio_and_low_coverage_fall_back(self):
        quality = MappingQuality(core_mapped=1, core_coverage=0.25, mapped_ratio=0.2)
        assert should_fallback_to_table("spec", quality) is True

    def test_one_strong_signal_is_enough(self):
        quality = MappingQuality(core_mapped=1, core_coverage=0.25, mapped_ratio=0.8)
        assert should_fallback_to_table("spec", quality) is False

    def test_generic_headers_with_endpoint_only(self):
        headers = ["A", "B", "C", "D"]
        quality = evaluate_mapping_quality(20, headers, {F.ENDPOINT: 0}, schema=MappingSchema.SPEC)

        assert quality.core_mapped == 0
        assert quality.score == pytest.approx(0.13)
        assert should_fallback_to_table("spec", quality) is True
        assert quality.recommended_format == OutputFormat.TABLE

    def test_decide_fallback_reason_and_warning(self):
        quality = MappingQuality(core_mapped=0, mapping_schema=MappingSchema.SPEC)
        decision = decide_fallback("spec", quality)

        assert decision.fallback is True
        assert decision.requested_format == OutputFormat.SPEC
        assert decision.recommended_format == OutputFormat.TABLE
        assert decision.reason == "No core fields mapped"

        warning = fallback_warning(quality, decision)
        assert warning.code == "MAPPING_LOW_CONFIDENCE_TABLE_FALLBACK"
        assert warning.severity.value == "warn"
        assert warning.details["core_field_count"] == 0
        assert warning.details["schema"] == "spec"

    def test_decide_fallback_for_table(self):
        decision = decide_fallback("table", MappingQuality())
        assert decision.fallback is False
        assert decision.recommended_format == OutputFormat.TABLE

    def test_decide_fallback_rejects_unknown_template(self):
        with pytest.raises(UnsupportedTemplateError):
            decide_fallback("default", MappingQuality())
