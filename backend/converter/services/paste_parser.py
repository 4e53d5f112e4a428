"""
Paste parser: raw text + delimiter -> CellMatrix.

Splitting is deliberately simple (no CSV quoting). Pipe-delimited input is
treated as a Markdown table: edge pipes are dropped and ``|---|`` separator
lines are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from converter.services.cell_matrix import CellMatrix
from converter.services.input_detect import detect_delimiter
from shared.config.settings import ApplicationSettings
from shared.exceptions.conversion import InputError
from shared.models.conversion import ConversionWarning
from shared.utils.app_logger import get_logger

logger = get_logger(__name__)

_SEPARATOR_CELL_RE = re.compile(r"^:?-{3,}:?$")


@dataclass(frozen=True)
class ParsedPaste:
    matrix: CellMatrix
    delimiter: str
    consistent_delimiter: bool = True
    warnings: List[ConversionWarning] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return self.matrix.row_count

    @property
    def col_count(self) -> int:
        return self.matrix.col_count


def _split_pipe_line(line: str) -> Optional[List[str]]:
    stripped = line.strip()
    cells = stripped.split("|")
    if stripped.startswith("|"):
        cells = cells[1:]
    if stripped.endswith("|") and cells:
        cells = cells[:-1]
    if cells and all(_SEPARATOR_CELL_RE.match(c.strip()) for c in cells):
        return None
    return cells


def split_rows(text: str, delimiter: str) -> List[List[str]]:
    rows: List[List[str]] = []
    for line in re.split(r"\r\n|\r|\n", text):
        if not line.strip():
            rows.append([])
            continue
        if delimiter == "|":
            cells = _split_pipe_line(line)
            if cells is None:
                continue
            rows.append(cells)
        else:
            rows.append(line.split(delimiter))
    return rows


def parse_paste(
    text: Optional[str],
    delimiter: Optional[str] = None,
    settings: Optional[ApplicationSettings] = None,
) -> ParsedPaste:
    """
    Parse pasted text into a normalized matrix.

    Raises:
        InputError: when the text is empty or whitespace only
    """
    if text is None or not text.strip():
        raise InputError("Pasted text is empty")

    warnings: List[ConversionWarning] = []
    consistent = True
    if delimiter is None:
        detection = detect_delimiter(text, settings)
        delimiter = detection.delimiter
        consistent = detection.consistent
        warnings.extend(detection.warnings)

    matrix = CellMatrix.from_rows(split_rows(text, delimiter)).normalize()
    logger.debug("Parsed paste into %dx%d matrix", matrix.row_count, matrix.col_count)
    return ParsedPaste(matrix=matrix, delimiter=delimiter, consistent_delimiter=consistent, warnings=warnings)


def parse_simple(text: Optional[str], delimiter: Optional[str] = None) -> CellMatrix:
    return parse_paste(text, delimiter).matrix
