"""Spreadsheet import of reference notes (.xlsx, .xls, .csv)."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
import io
import logging
import math
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence, Tuple
import uuid

from openpyxl import load_workbook
import xlrd

from models.reference_note import DEFAULT_NOTE_TYPE, ReferenceNote

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME = "application/vnd.ms-excel"
CSV_MIME = "text/csv"

ALLOWED_MIME_TYPES = {XLSX_MIME: ".xlsx", XLS_MIME: ".xls", CSV_MIME: ".csv"}
ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")

# Source-locale header first; the snake_case field name is accepted as an alias.
COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "note_id": ("笔记ID", "note_id"),
    "note_link": ("笔记链接", "note_link"),
    "note_type": ("笔记类型", "note_type"),
    "title": ("笔记标题", "title"),
    "content": ("笔记内容", "content"),
    "likes": ("点赞量", "likes"),
    "favorites": ("收藏量", "favorites"),
    "comments": ("评论量", "comments"),
    "shares": ("分享量", "shares"),
    "published_at": ("发布时间", "published_at"),
    "author_id": ("博主ID", "author_id"),
    "author_link": ("博主链接", "author_link"),
    "author_name": ("博主昵称", "author_name"),
    "image_count": ("图片数量", "image_count"),
    "cover_url": ("笔记封面链接", "cover_url"),
}

NUMERIC_FIELDS = ("likes", "favorites", "comments", "shares", "image_count")
REQUIRED_COLUMNS = ("title", "note_id")

INVALID_FILE_TYPE = "Please upload a valid spreadsheet file (.xlsx, .xls, .csv)"
NO_SHEETS = "No worksheet found in the spreadsheet"
NO_DATA_ROWS = "The worksheet has no data rows"


class SpreadsheetReadError(ValueError):
    """Raised when file content cannot be decoded as a spreadsheet."""


@dataclass
class ParseResult:
    success: bool
    notes: List[ReferenceNote] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total_rows: int = 0
    parsed_rows: int = 0

    @classmethod
    def failure(cls, message: str) -> "ParseResult":
        return cls(success=False, errors=[message])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "notes": [note.model_dump(mode="json") for note in self.notes],
            "errors": list(self.errors),
            "total_rows": self.total_rows,
            "parsed_rows": self.parsed_rows,
        }


def _extension(filename: Optional[str]) -> str:
    return PurePath(filename or "").suffix.lower()


def _normalize_mime(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def is_valid_spreadsheet(filename: Optional[str], content_type: Optional[str] = None) -> bool:
    return _normalize_mime(content_type) in ALLOWED_MIME_TYPES or _extension(filename) in ALLOWED_EXTENSIONS


def _detect_format(filename: Optional[str], content_type: Optional[str]) -> Optional[str]:
    ext = _extension(filename)
    if ext in ALLOWED_EXTENSIONS:
        return ext
    return ALLOWED_MIME_TYPES.get(_normalize_mime(content_type))


def parse_number(value: Any) -> int:
    """Coerce a cell to a non-negative int; anything unparseable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
        # float() would accept "1_000".
        if not value or "_" in value:
            return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return max(int(number), 0)


def parse_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value).strip()


def _decode_csv(content: bytes) -> str:
    for encoding in ("utf-8-sig", "gb18030"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise SpreadsheetReadError("CSV file is not valid UTF-8 or GB18030 text")


def _read_csv(content: bytes) -> List[List[Any]]:
    text = _decode_csv(content)
    try:
        return [row for row in csv.reader(io.StringIO(text))]
    except csv.Error as exc:
        raise SpreadsheetReadError(f"Invalid CSV: {exc}") from exc


def _read_xlsx(content: bytes) -> Optional[List[List[Any]]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise SpreadsheetReadError(f"Could not open workbook: {exc}") from exc
    try:
        if not workbook.sheetnames:
            return None
        sheet = workbook[workbook.sheetnames[0]]
        # Read-only sheets are parsed lazily, so broken sheet XML surfaces here.
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    except Exception as exc:
        raise SpreadsheetReadError(f"Could not read worksheet: {exc}") from exc
    finally:
        workbook.close()


def _read_xls(content: bytes) -> Optional[List[List[Any]]]:
    try:
        book = xlrd.open_workbook(file_contents=content)
    except Exception as exc:
        raise SpreadsheetReadError(f"Could not open workbook: {exc}") from exc
    if book.nsheets == 0:
        return None
    sheet = book.sheet_by_index(0)
    rows: List[List[Any]] = []
    for row_idx in range(sheet.nrows):
        row: List[Any] = []
        for cell in sheet.row(row_idx):
            if cell.ctype == xlrd.XL_CELL_DATE:
                row.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
            else:
                row.append(cell.value)
        rows.append(row)
    return rows


_READERS = {".csv": _read_csv, ".xlsx": _read_xlsx, ".xls": _read_xls}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _header_index(header_row: Sequence[Any]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for position, cell in enumerate(header_row):
        name = parse_string(cell)
        if name and name not in index:
            index[name] = position
    return index


def _resolve_columns(headers: Dict[str, int]) -> Dict[str, int]:
    columns: Dict[str, int] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in headers:
                columns[field_name] = headers[alias]
                break
    return columns


def _build_note(row: Sequence[Any], columns: Dict[str, int], imported_at: str) -> ReferenceNote:
    def cell(field_name: str) -> Any:
        position = columns.get(field_name)
        if position is None or position >= len(row):
            return None
        return row[position]

    values: Dict[str, Any] = {}
    for field_name in COLUMN_ALIASES:
        if field_name in NUMERIC_FIELDS:
            values[field_name] = parse_number(cell(field_name))
        else:
            values[field_name] = parse_string(cell(field_name))
    values["note_type"] = values["note_type"] or DEFAULT_NOTE_TYPE
    return ReferenceNote(id=str(uuid.uuid4()), created_at=imported_at, **values)


def parse_spreadsheet(
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None,
) -> ParseResult:
    """
    Parse the first sheet of a spreadsheet into reference notes.

    Unreadable files, workbooks without sheets and sheets without data rows
    fail as a whole. Everything else degrades to per-row diagnostics: rows
    with neither a title nor a note ID are skipped and reported by their
    sheet row number.
    """
    if not is_valid_spreadsheet(filename, content_type):
        return ParseResult.failure(INVALID_FILE_TYPE)
    file_format = _detect_format(filename, content_type)

    try:
        rows = _READERS[file_format](content)
    except SpreadsheetReadError as exc:
        logger.warning("spreadsheet_read_failed file=%s error=%s", filename, exc)
        return ParseResult.failure(f"Failed to parse file: {exc}")

    if rows is None:
        return ParseResult.failure(NO_SHEETS)

    headers = _header_index(rows[0]) if rows else {}
    data_rows = [
        (row_number, row)
        for row_number, row in enumerate(rows[1:], start=2)
        if not all(_is_blank(value) for value in row)
    ]
    if not data_rows:
        return ParseResult.failure(NO_DATA_ROWS)

    errors: List[str] = []
    columns = _resolve_columns(headers)
    missing = [COLUMN_ALIASES[name][0] for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        errors.append(f"Missing required columns: {', '.join(missing)}")

    imported_at = datetime.now(timezone.utc).isoformat()
    notes: List[ReferenceNote] = []
    for row_number, row in data_rows:
        note = _build_note(row, columns, imported_at)
        if not note.title and not note.note_id:
            errors.append(f"Row {row_number}: title and note ID are both empty, skipped")
            continue
        notes.append(note)

    logger.info(
        "spreadsheet_parsed file=%s total=%s accepted=%s errors=%s",
        filename,
        len(data_rows),
        len(notes),
        len(errors),
    )
    return ParseResult(
        success=len(notes) > 0,
        notes=notes,
        errors=errors,
        total_rows=len(data_rows),
        parsed_rows=len(notes),
    )
