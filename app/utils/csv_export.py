"""
CSV export utilities
"""
import csv
import io
from typing import Iterable, List, Sequence
from fastapi.responses import StreamingResponse


def stream_csv(headers: List[str], rows: Iterable[Sequence], filename: str = "export.csv") -> StreamingResponse:
    """
    Stream CSV data as HTTP response

    Args:
        headers: List of column headers
        rows: Iterable of row sequences (same order as headers; short rows are padded)
        filename: Filename for Content-Disposition header

    Returns:
        StreamingResponse with CSV content
    """
    def generate():
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)

        writer.writerow(headers)
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)

        for row in rows:
            values = ["" if v is None else str(v) for v in row]
            values.extend([""] * (len(headers) - len(values)))
            writer.writerow(values)
            yield output.getvalue()
            output.seek(0)
            output.truncate(0)

    return StreamingResponse(
        generate(),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )
