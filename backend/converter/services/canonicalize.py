"""
Re-index raw data rows through a column map.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from converter.services.cell_matrix import is_blank
from shared.models.conversion import (
    CanonicalRow,
    CanonicalTable,
    ColumnMap,
    ConversionWarning,
    WarningCategory,
    WarningSeverity,
    new_warning,
)


def build_canonical_table(
    headers: Optional[Sequence[str]],
    data_rows: Optional[Sequence[Sequence[str]]],
    column_map: Optional[ColumnMap],
    title: str = "",
) -> Tuple[CanonicalTable, List[ConversionWarning]]:
    headers = list(headers or [])
    column_map = {f: i for f, i in (column_map or {}).items() if 0 <= i < len(headers)}
    mapped = set(column_map.values())

    rows: List[CanonicalRow] = []
    source_rows: List[List[str]] = []
    skipped = 0
    for row_idx, raw in enumerate(data_rows or []):
        cells = [("" if v is None else str(v)).strip() for v in raw]
        cells = (cells + [""] * len(headers))[: max(len(headers), 1)]
        if all(is_blank(v) for v in cells):
            skipped += 1
            continue

        values = {field: cells[idx] for field, idx in sorted(column_map.items(), key=lambda item: item[1]) if cells[idx]}
        extras = {
            headers[idx]: cells[idx]
            for idx in range(len(headers))
            if idx not in mapped and headers[idx].strip() and cells[idx]
        }
        rows.append(CanonicalRow(source_index=row_idx, values=values, extras=extras))
        source_rows.append(cells[: len(headers)])

    warnings: List[ConversionWarning] = []
    if skipped:
        warnings.append(
            new_warning(
                "ROWS_SKIPPED_EMPTY",
                WarningSeverity.INFO,
                WarningCategory.ROWS,
                f"Skipped {skipped} empty row(s).",
                details={"skipped_rows": skipped},
            )
        )

    table = CanonicalTable(
        title=title,
        headers=headers,
        column_map=column_map,
        rows=rows,
        source_rows=source_rows,
    )
    return table, warnings
