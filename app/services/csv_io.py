from __future__ import annotations

import csv
import io
from typing import BinaryIO, Iterable, Sequence

from app.core.errors import InvalidRequestError


def read_csv(fileobj: BinaryIO) -> tuple[list[str], list[list[str]]]:
    """Return the header and the non-empty data rows of an uploaded UTF-8 CSV file."""
    try:
        text = fileobj.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidRequestError("CSV file must be UTF-8 encoded", field="file")
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if not header:
        raise InvalidRequestError("CSV file is empty", field="file")
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    return [h.strip() for h in header], rows


def require_header(header: Sequence[str], expected: Sequence[str]) -> None:
    if list(header[: len(expected)]) != list(expected):
        raise InvalidRequestError(
            "invalid CSV header, expected: " + ", ".join(expected),
            field="file",
            detail=list(header),
        )


def cell(row: Sequence[str], index: int, default: str = "") -> str:
    return row[index].strip() if index < len(row) else default


def write_csv(header: Sequence[str], rows: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()
