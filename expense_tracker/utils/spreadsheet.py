import zipfile
from io import BytesIO
from typing import List, Optional, Sequence

import pandas as pd

from expense_tracker.exceptions import ValidationError

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def rows_to_xlsx(rows: List[dict], columns: Optional[Sequence[str]] = None, sheet_name: str = "Expenses") -> bytes:
    df = pd.DataFrame(rows, columns=list(columns) if columns else None)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return buffer.getvalue()


def read_rows(content: bytes, filename: str) -> List[dict]:
    """Parse an uploaded .xlsx or .csv file into row mappings; empty cells become None."""
    name = (filename or "").lower()
    if not name.endswith((".csv", ".xlsx")):
        raise ValidationError("Unsupported file type, expected .xlsx or .csv")

    try:
        if name.endswith(".csv"):
            df = pd.read_csv(BytesIO(content), dtype=object)
        else:
            df = pd.read_excel(BytesIO(content), dtype=object)
    # Truncated workbooks fail inside the zip container, missing parts with KeyError
    except (ValueError, KeyError, zipfile.BadZipFile):
        raise ValidationError("Could not read the uploaded file")

    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")
