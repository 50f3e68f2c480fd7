from __future__ import annotations

import io

import pandas as pd

from .service import RecapReport

SHEET_NAME = "Rekap"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def recap_to_xlsx(report: RecapReport) -> bytes:
    """Title row, period row, blank row, then the header and the matrix."""
    df = pd.DataFrame(report.matrix(), columns=report.header)

    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME, startrow=3)
        ws = writer.sheets[SHEET_NAME]
        ws.cell(row=1, column=1, value=report.title)
        ws.cell(row=2, column=1, value=f"Periode: {report.period}")
    return out.getvalue()


def recap_filename(report: RecapReport) -> str:
    return f"{report.file_stem}.xlsx"
