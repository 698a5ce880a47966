"""CSV download responses for report endpoints."""

import io
from datetime import date
from typing import Any, Dict, Sequence

from fastapi.responses import StreamingResponse

from services.report_service import rows_to_csv


def csv_response(rows: Sequence[Dict[str, Any]], report_name: str) -> StreamingResponse:
    """Stream report rows as an attached ``<report>-<date>.csv`` file."""
    content = rows_to_csv(rows)
    filename = f"{report_name}-report-{date.today().isoformat()}.csv"
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
