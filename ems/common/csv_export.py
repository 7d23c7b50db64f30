"""CSV export helper shared by the employee and attendance export endpoints."""

from __future__ import annotations

import csv
import io
from typing import Any, Iterable, Sequence

from fastapi.responses import Response


def rows_to_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render *header* + *rows* as CSV text; ``None`` cells become empty."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    return out.getvalue()


def csv_response(content: str, filename: str) -> Response:
    """Wrap CSV text in a download response."""
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
