"""
文件上传解析测试
"""
import io
import json
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest
from openpyxl import Workbook

from reportai.services.errors import ValidationError
from reportai.services.upload_service import (
    MAX_FILES,
    PREVIEW_ROWS,
    build_preview,
    parse_file,
    process_uploads,
    read_uploads,
)


def make_xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_csv_preview():
    content = "name,revenue\n" + "\n".join(f"item{i},{i * 10}" for i in range(8))

    preview = build_preview("sales.csv", content.encode("utf-8"))

    assert preview.original_name == "sales.csv"
    assert preview.size == len(content.encode("utf-8"))
    assert preview.row_count == 8
    assert preview.columns == ["name", "revenue"]
    assert len(preview.preview) == PREVIEW_ROWS
    assert preview.preview[0] == {"name": "item0", "revenue": "0"}


def test_csv_with_bom():
    rows = parse_file("bom.csv", "\ufeffid,city\n1,Paris\n".encode("utf-8"))
    assert rows == [{"id": "1", "city": "Paris"}]


def test_tsv():
    rows = parse_file("data.TSV", b"a\tb\n1\t2\n")
    assert rows == [{"a": "1", "b": "2"}]


def test_json_array_and_object():
    assert parse_file("list.json", json.dumps([{"a": 1}, {"a": 2}]).encode()) == [{"a": 1}, {"a": 2}]
    assert parse_file("one.json", json.dumps({"a": 1}).encode()) == [{"a": 1}]


def test_xlsx_skips_empty_cells():
    content = make_xlsx([["region", "sales"], ["EU", 100], [None, 50]])

    preview = build_preview("report.xlsx", content)

    assert preview.columns == ["region", "sales"]
    assert preview.row_count == 2
    assert preview.preview[1] == {"sales": 50}


def test_csv_missing_fields_are_none():
    rows = parse_file("short.csv", b"a,b,c\n1,,3\n4\n")
    assert rows == [{"a": "1", "b": "", "c": "3"}, {"a": "4", "b": None, "c": None}]


def test_csv_header_only():
    assert parse_file("empty.csv", b"a,b\n") == []
    assert parse_file("blank.csv", b"") == []


def test_xlsx_values_are_json_safe():
    content = make_xlsx([["day", "amount"], [datetime(2024, 3, 1, 9, 30), 1.5], [datetime(2024, 3, 2), None]])

    rows = parse_file("days.xlsx", content)

    assert rows[0]["day"].startswith("2024-03-01T09:30:00")
    assert rows[0]["amount"] == 1.5
    assert list(rows[1].keys()) == ["day"]
    json.dumps(rows)


def test_invalid_json_content():
    with pytest.raises(ValidationError, match="Could not parse"):
        parse_file("broken.json", b"{not json")


def test_invalid_xlsx_content():
    with pytest.raises(ValidationError, match="Could not parse"):
        parse_file("broken.xlsx", b"plain text")


class TestProcessUploads:
    """测试批量上传校验"""

    def test_rejects_unsupported_type(self):
        with pytest.raises(ValidationError, match="Invalid file type"):
            process_uploads([("notes.txt", b"hello")])

    def test_rejects_xls(self):
        with pytest.raises(ValidationError, match="Invalid file type"):
            process_uploads([("legacy.xls", b"\xd0\xcf\x11\xe0")])

    def test_rejects_too_many_files(self):
        files = [(f"f{i}.csv", b"a\n1\n") for i in range(MAX_FILES + 1)]
        with pytest.raises(ValidationError, match="Too many files"):
            process_uploads(files)

    def test_rejects_empty(self):
        with pytest.raises(ValidationError, match="No files uploaded"):
            process_uploads([])

    def test_rejects_large_file(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "10")
        with pytest.raises(ValidationError, match="File too large"):
            process_uploads([("big.csv", b"a,b\n" + b"1,2\n" * 10)])

    def test_multiple_files(self):
        previews = process_uploads([
            ("a.csv", b"x\n1\n"),
            ("b.json", b'[{"y": 2}]'),
        ])
        assert [p.original_name for p in previews] == ["a.csv", "b.json"]
        assert [p.row_count for p in previews] == [1, 1]


def make_upload(filename, content):
    upload = Mock()
    upload.filename = filename
    upload.read = AsyncMock(return_value=content)
    return upload


class TestReadUploads:
    """测试按上限读取上传内容"""

    @pytest.mark.asyncio
    async def test_reads_at_most_limit_plus_one(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "10")
        upload = make_upload("a.csv", b"x\n1\n")

        assert await read_uploads([upload]) == [("a.csv", b"x\n1\n")]
        upload.read.assert_awaited_once_with(11)

    @pytest.mark.asyncio
    async def test_stops_at_oversized_file(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "10")
        big = make_upload("big.csv", b"a" * 11)
        after = make_upload("after.csv", b"x\n1\n")

        with pytest.raises(ValidationError, match="File too large: big.csv"):
            await read_uploads([big, after])
        after.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_too_many_files_not_read(self):
        uploads = [make_upload(f"f{i}.csv", b"a\n1\n") for i in range(MAX_FILES + 1)]

        with pytest.raises(ValidationError, match="Too many files"):
            await read_uploads(uploads)
        assert all(not u.read.called for u in uploads)
