import io
from pathlib import Path
import struct
import zipfile

from openpyxl import Workbook

from services.spreadsheet import (
    INVALID_FILE_TYPE,
    NO_DATA_ROWS,
    NO_SHEETS,
    XLSX_MIME,
    is_valid_spreadsheet,
    parse_number,
    parse_spreadsheet,
    parse_string,
)


HEADER = "笔记ID,笔记链接,笔记类型,笔记标题,笔记内容,点赞量,收藏量,评论量,分享量,发布时间,博主ID,博主昵称,图片数量"
FIXTURES = Path(__file__).parent / "fixtures"


def _csv(*rows: str) -> bytes:
    return ("\n".join((HEADER,) + rows) + "\n").encode("utf-8")


def _xlsx(sheets) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets:
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_valid_spreadsheet_accepts_extension_or_mime():
    assert is_valid_spreadsheet("notes.XLSX")
    assert is_valid_spreadsheet("notes.xls")
    assert is_valid_spreadsheet("export.csv")
    assert is_valid_spreadsheet("download", "text/csv; charset=utf-8")
    assert is_valid_spreadsheet("download.bin", XLSX_MIME)
    assert not is_valid_spreadsheet("notes.pdf", "application/pdf")
    assert not is_valid_spreadsheet(None, None)


def test_parse_rejects_invalid_file_type():
    result = parse_spreadsheet(b"%PDF-1.4", "notes.pdf", "application/pdf")
    assert result.success is False
    assert result.notes == []
    assert result.errors == [INVALID_FILE_TYPE]


def test_csv_rows_are_all_accepted_when_identified():
    content = _csv(
        "n1,https://x.example/n1,视频,First,Body one,120,30,4,2,2024-05-01 10:00,a1,Alice,3",
        "n2,https://x.example/n2,,Second,Body two,80,10,1,0,2024-05-02,a2,Bob,1",
        ",,,Third only title,,5,,,,,,,",
    )
    result = parse_spreadsheet(content, "notes.csv")

    assert result.success is True
    assert result.total_rows == 3
    assert result.parsed_rows == 3
    assert result.errors == []
    first, second, third = result.notes
    assert first.note_id == "n1"
    assert first.note_type == "视频"
    assert first.likes == 120
    assert first.favorites == 30
    assert first.author_name == "Alice"
    assert first.image_count == 3
    assert second.note_type == "图文"
    assert third.title == "Third only title"
    assert third.note_id == ""
    assert len({note.id for note in result.notes}) == 3


def test_row_without_title_and_note_id_is_skipped_with_row_number():
    content = _csv(
        "n1,,,Kept,,1,1,1,1,,,,",
        "  ,link-only,,   ,content,9,9,9,9,,,,",
        "n3,,,,,,,,,,,,",
    )
    result = parse_spreadsheet(content, "notes.csv")

    assert result.success is True
    assert result.total_rows == 3
    assert result.parsed_rows == 2
    assert [note.note_id for note in result.notes] == ["n1", "n3"]
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Row 3:")


def test_engagement_counters_default_to_zero():
    content = _csv("n1,,,Title,,,abc,-5,NaN,,,,")
    note = parse_spreadsheet(content, "notes.csv").notes[0]

    assert note.likes == 0
    assert note.favorites == 0
    assert note.comments == 0
    assert note.shares == 0
    assert note.image_count == 0


def test_parse_number_and_string_coercion():
    assert parse_number("12") == 12
    assert parse_number(" 3.9 ") == 3
    assert parse_number(None) == 0
    assert parse_number("") == 0
    assert parse_number("1.2万") == 0
    assert parse_number("1_000") == 0
    assert parse_number(float("inf")) == 0
    assert parse_number(True) == 0
    assert parse_string(None) == ""
    assert parse_string(6512345.0) == "6512345"
    assert parse_string("  padded  ") == "padded"


def test_header_only_sheet_is_rejected():
    result = parse_spreadsheet(_csv(), "notes.csv")
    assert result.success is False
    assert result.notes == []
    assert result.errors == [NO_DATA_ROWS]
    assert result.total_rows == 0


def test_empty_file_is_rejected():
    result = parse_spreadsheet(b"", "notes.csv")
    assert result.success is False
    assert result.errors == [NO_DATA_ROWS]


def test_missing_required_headers_warn_but_rows_still_parse():
    content = "点赞量,博主昵称\n10,Alice\n".encode("utf-8")
    result = parse_spreadsheet(content, "notes.csv")

    assert result.success is False
    assert result.total_rows == 1
    assert result.errors[0] == "Missing required columns: 笔记标题, 笔记ID"
    assert result.errors[1].startswith("Row 2:")


def test_snake_case_headers_are_accepted_as_aliases():
    content = "note_id,title,likes\nabc,Alias title,42\n".encode("utf-8")
    result = parse_spreadsheet(content, "notes.csv")

    assert result.success is True
    assert result.errors == []
    assert result.notes[0].note_id == "abc"
    assert result.notes[0].likes == 42


def test_gb18030_csv_is_decoded():
    content = "笔记ID,笔记标题\nn1,理财入门\n".encode("gb18030")
    result = parse_spreadsheet(content, "notes.csv")
    assert result.success is True
    assert result.notes[0].title == "理财入门"


def test_xlsx_reads_first_sheet_only_and_skips_blank_rows():
    content = _xlsx(
        [
            (
                "Export",
                [
                    ["笔记ID", "笔记标题", "点赞量", "收藏量", "发布时间"],
                    [6512345, "Numeric id", 1500, None, "2024-06-01"],
                    [None, None, None, None, None],
                    ["n2", "Text id", "88", "7", None],
                ],
            ),
            ("Ignored", [["笔记ID", "笔记标题"], ["zzz", "Never read"]]),
        ]
    )
    result = parse_spreadsheet(content, "export.xlsx")

    assert result.success is True
    assert result.total_rows == 2
    assert [note.note_id for note in result.notes] == ["6512345", "n2"]
    assert result.notes[0].likes == 1500
    assert result.notes[0].favorites == 0
    assert result.notes[1].likes == 88


def test_corrupt_xlsx_fails_whole_import():
    result = parse_spreadsheet(b"definitely not a zip archive", "broken.xlsx")
    assert result.success is False
    assert result.notes == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to parse file")


def _truncate_first_sheet(content: bytes) -> bytes:
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = data[: len(data) // 2]
            target.writestr(item, data)
    return buffer.getvalue()


def test_xlsx_with_broken_sheet_xml_fails_whole_import():
    content = _xlsx([("Export", [["笔记ID", "笔记标题"]] + [[f"n{i}", f"Title {i}"] for i in range(20)])])
    result = parse_spreadsheet(_truncate_first_sheet(content), "broken.xlsx")

    assert result.success is False
    assert result.notes == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to parse file")


def test_legacy_xls_reads_text_numbers_and_dates():
    content = (FIXTURES / "xhs_export.xls").read_bytes()
    result = parse_spreadsheet(content, "xhs_export.xls")

    assert result.success is True
    assert result.errors == []
    assert result.total_rows == 2
    first, second = result.notes
    assert first.note_id == "x1"
    assert first.title == "理财入门"
    assert first.likes == 256
    assert first.published_at == "2024-05-01 12:00:00"
    assert second.note_id == "6512345"
    assert second.title == "Second"
    assert second.likes == 12
    assert second.published_at == ""


def test_xls_without_worksheets_is_rejected():
    # Workbook globals only: BIFF8 BOF followed by EOF.
    content = struct.pack("<HHHHHH", 0x0809, 16, 0x0600, 0x0005, 0x0DBB, 0x07CC) + bytes(8) + struct.pack("<HH", 0x000A, 0)
    result = parse_spreadsheet(content, "empty.xls")

    assert result.success is False
    assert result.errors == [NO_SHEETS]
