"""
🔥 THINK ULTRA! Conversion service

Runs the whole pipeline for one request:

    raw text -> input type -> paste parser -> block selection
             -> column mapping -> mapping quality -> fallback -> renderer

Every stage is a pure function of its inputs; warnings from each stage are
appended in order and returned to the caller verbatim. Only an empty input
(InputError) or an unknown template name (UnsupportedTemplateError) aborts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Union

from converter.services.block_selector import AnalyzedBlock, BlockSelector
from converter.services.canonicalize import build_canonical_table
from converter.services.cell_matrix import CellMatrix
from converter.services.input_detect import detect_delimiter, detect_input_type
from converter.services.mapping_quality import decide_fallback, fallback_warning
from converter.services.markdown_sections import extract_sections, render_markdown_document
from converter.services.paste_parser import parse_paste
from converter.services.renderers import get_renderer
from shared.config.settings import ApplicationSettings, get_settings
from shared.exceptions.conversion import InputError
from shared.models.conversion import (
    CanonicalField,
    ConversionWarning,
    ConvertResult,
    InputAnalysis,
    InputType,
    MappingQuality,
    OutputFormat,
    PreviewResult,
    WarningCategory,
    WarningSeverity,
    new_warning,
)
from shared.utils.app_logger import get_converter_logger

logger = get_converter_logger("service")

PREVIEW_ROW_LIMIT = 20

Overrides = Optional[Mapping[str, Union[str, CanonicalField]]]


@dataclass(frozen=True)
class _PipelinePass:
    preview: PreviewResult
    selected: Optional[AnalyzedBlock]


class ConversionService:
    """Preview and convert pasted text or an already obtained cell grid."""

    def __init__(self, settings: Optional[ApplicationSettings] = None):
        self.settings = settings or get_settings()
        self.selector = BlockSelector(self.settings)

    # ---------------------------
    # Public API
    # ---------------------------

    def preview(self, text: Optional[str], template: Union[str, OutputFormat] = "spec",
                overrides: Overrides = None) -> PreviewResult:
        requested = OutputFormat.parse(template)
        preview = self._dispatch_text(text, requested, overrides).preview
        self._log("preview", preview)
        return preview

    def convert(self, text: Optional[str], template: Union[str, OutputFormat] = "spec",
                title: Optional[str] = None, overrides: Overrides = None,
                allow_fallback: bool = True) -> ConvertResult:
        requested = OutputFormat.parse(template)
        pipeline = self._dispatch_text(text, requested, overrides)
        if pipeline.preview.input_type == InputType.MARKDOWN:
            result = self._convert_markdown(text or "", requested, title, pipeline.preview)
        else:
            result = self._convert_table(pipeline, requested, title, allow_fallback)
        self._log("convert", result.preview, result)
        return result

    def preview_matrix(self, rows: Optional[Sequence[Sequence[Any]]],
                       template: Union[str, OutputFormat] = "spec",
                       overrides: Overrides = None) -> PreviewResult:
        requested = OutputFormat.parse(template)
        preview = self._run_table(self._matrix_from_rows(rows), requested, overrides).preview
        self._log("preview", preview)
        return preview

    def convert_matrix(self, rows: Optional[Sequence[Sequence[Any]]],
                       template: Union[str, OutputFormat] = "spec",
                       title: Optional[str] = None, overrides: Overrides = None,
                       allow_fallback: bool = True) -> ConvertResult:
        requested = OutputFormat.parse(template)
        pipeline = self._run_table(self._matrix_from_rows(rows), requested, overrides)
        result = self._convert_table(pipeline, requested, title, allow_fallback)
        self._log("convert", result.preview, result)
        return result

    # ---------------------------
    # Pipeline stages
    # ---------------------------

    @staticmethod
    def _matrix_from_rows(rows: Optional[Sequence[Sequence[Any]]]) -> CellMatrix:
        if rows is None:
            raise InputError("Cell grid is missing")
        return CellMatrix.from_rows(rows).normalize()

    def _dispatch_text(self, text: Optional[str], requested: OutputFormat, overrides: Overrides) -> _PipelinePass:
        if text is None or not text.strip():
            raise InputError("Pasted text is empty")

        analysis = detect_input_type(text, self.settings)
        warnings: List[ConversionWarning] = []

        if analysis.input_type == InputType.AMBIGUOUS:
            detection = detect_delimiter(text, self.settings)
            as_table = detection.consistent and detection.columns >= 2
            warnings.append(
                new_warning(
                    "DETECT_AMBIGUOUS_INPUT",
                    WarningSeverity.INFO,
                    WarningCategory.DETECT,
                    "Input type is ambiguous; treating it as "
                    + ("table data." if as_table else "markdown."),
                    hint="Paste spreadsheet cells directly, or add Markdown headings for prose.",
                    details={
                        "markdown_score": analysis.markdown_score,
                        "table_score": analysis.table_score,
                        "treated_as": "table" if as_table else "markdown",
                    },
                )
            )
            if not as_table:
                return self._markdown_pass(text, analysis, warnings)
        elif analysis.input_type == InputType.MARKDOWN:
            return self._markdown_pass(text, analysis, warnings)

        parsed = parse_paste(text, settings=self.settings)
        warnings.extend(parsed.warnings)
        return self._run_table(
            parsed.matrix,
            requested,
            overrides,
            analysis=analysis,
            delimiter=parsed.delimiter,
            warnings=warnings,
        )

    @staticmethod
    def _markdown_pass(text: str, analysis: InputAnalysis, warnings: List[ConversionWarning]) -> _PipelinePass:
        preview = PreviewResult(
            input_type=InputType.MARKDOWN,
            input_analysis=analysis,
            sections=extract_sections(text),
            warnings=list(warnings),
        )
        return _PipelinePass(preview=preview, selected=None)

    def _run_table(
        self,
        matrix: CellMatrix,
        requested: OutputFormat,
        overrides: Overrides,
        analysis: Optional[InputAnalysis] = None,
        delimiter: Optional[str] = None,
        warnings: Optional[List[ConversionWarning]] = None,
    ) -> _PipelinePass:
        warnings = list(warnings or [])
        selection = self.selector.select(matrix, overrides)
        selected = selection.selected
        warnings.extend(selection.warnings)

        if selected is None:
            quality = MappingQuality()
            preview = PreviewResult(
                input_type=InputType.TABLE,
                input_analysis=analysis,
                delimiter=delimiter,
                quality=quality,
                fallback=decide_fallback(requested, quality, self.settings),
                warnings=warnings,
            )
            return _PipelinePass(preview=preview, selected=None)

        warnings.extend(selected.warnings)
        preview = PreviewResult(
            input_type=InputType.TABLE,
            input_analysis=analysis,
            delimiter=delimiter,
            blocks=selection.blocks,
            selected_block_id=selected.block.id,
            headers=selected.headers,
            header_row=selected.block.header_row,
            header_confidence=selected.block.confidence,
            column_mapping=selected.mapping.header_mapping(selected.headers),
            unmapped_headers=selected.mapping.unmapped_headers,
            total_rows=len(selected.data_rows),
            preview_rows=selected.data_rows[:PREVIEW_ROW_LIMIT],
            quality=selected.quality,
            fallback=decide_fallback(requested, selected.quality, self.settings),
            warnings=warnings,
        )
        return _PipelinePass(preview=preview, selected=selected)

    def _convert_table(self, pipeline: _PipelinePass, requested: OutputFormat,
                       title: Optional[str], allow_fallback: bool) -> ConvertResult:
        preview = pipeline.preview
        warnings = list(preview.warnings)
        selected = pipeline.selected

        effective = requested
        fell_back = False
        if allow_fallback and preview.fallback is not None and preview.fallback.fallback:
            effective = OutputFormat.TABLE
            fell_back = True
            warnings.append(fallback_warning(preview.quality or MappingQuality(), preview.fallback))

        if selected is not None:
            table, row_warnings = build_canonical_table(
                selected.headers, selected.data_rows, selected.mapping.column_map, title or ""
            )
        else:
            table, row_warnings = build_canonical_table([], [], {}, title or "")
        warnings.extend(row_warnings)

        if not table.rows:
            warnings.append(
                new_warning(
                    "RENDER_NO_ROWS",
                    WarningSeverity.INFO,
                    WarningCategory.RENDER,
                    "No data rows to render; the document only contains its summary.",
                )
            )

        markdown = get_renderer(effective, self.settings).render(table)
        return ConvertResult(
            markdown=markdown,
            requested_format=requested,
            output_format=effective,
            input_type=InputType.TABLE,
            total_items=len(table.rows),
            fell_back=fell_back,
            preview=preview,
            warnings=warnings,
        )

    def _convert_markdown(self, text: str, requested: OutputFormat, title: Optional[str],
                          preview: PreviewResult) -> ConvertResult:
        return ConvertResult(
            markdown=render_markdown_document(text, title, self.settings),
            requested_format=requested,
            output_format=requested,
            input_type=InputType.MARKDOWN,
            total_items=len(preview.sections),
            preview=preview,
            warnings=list(preview.warnings),
        )

    @staticmethod
    def _log(action: str, preview: PreviewResult, result: Optional[ConvertResult] = None) -> None:
        if preview.input_type == InputType.MARKDOWN:
            logger.info("%s: markdown input, %d section(s), %d warning(s)",
                        action, len(preview.sections), len(preview.warnings))
            return
        score = preview.quality.score if preview.quality else 0.0
        if result is not None:
            logger.info("%s: %s -> %s, %d item(s), score %.2f, %d warning(s)",
                        action, result.requested_format.value, result.output_format.value,
                        result.total_items, score, len(result.warnings))
        else:
            logger.info("%s: block %s, %d row(s), score %.2f, %d warning(s)",
                        action, preview.selected_block_id, preview.total_rows, score, len(preview.warnings))
