"""
文件上传解析服务
将 CSV/TSV/XLSX/JSON 文件解析为行数据，并返回列信息和前几行预览
"""
import io
import json
import os
import zipfile
from typing import List, Dict, Any, Tuple

import pandas as pd
from fastapi import UploadFile
from openpyxl.utils.exceptions import InvalidFileException

from .dto import FilePreview
from .errors import ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".tsv", ".xlsx", ".json")
MAX_FILES = 5
PREVIEW_ROWS = 5


def max_upload_bytes() -> int:
    return int(os.getenv("UPLOAD_MAX_BYTES", 10 * 1024 * 1024))


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def parse_delimited(content: bytes, delimiter: str) -> List[Dict[str, Any]]:
    """单元格按字符串读取，缺失的字段为 None"""
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            sep=delimiter,
            encoding="utf-8-sig",
            dtype=str,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        return []
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def parse_xlsx(content: bytes) -> List[Dict[str, Any]]:
    """读取第一个工作表，首行作为表头，空单元格不输出"""
    df = pd.read_excel(io.BytesIO(content), sheet_name=0, engine="openpyxl")
    # to_json 负责把 NaN/日期转换为 JSON 可用的值
    records = json.loads(df.to_json(orient="records", date_format="iso"))
    rows = [{key: value for key, value in record.items() if value is not None} for record in records]
    return [row for row in rows if row]


def parse_json(content: bytes) -> List[Dict[str, Any]]:
    data = json.loads(content.decode("utf-8-sig"))
    if not isinstance(data, list):
        data = [data]
    return data


def parse_file(filename: str, content: bytes) -> List[Dict[str, Any]]:
    """
    按扩展名解析文件

    Raises:
        ValidationError: 不支持的文件类型或内容无法解析
    """
    ext = _extension(filename)
    try:
        if ext == ".csv":
            return parse_delimited(content, ",")
        if ext == ".tsv":
            return parse_delimited(content, "\t")
        if ext == ".xlsx":
            return parse_xlsx(content)
        if ext == ".json":
            return parse_json(content)
    except (ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        raise ValidationError(f"Could not parse {filename}: {e}") from e

    raise ValidationError("Invalid file type. Only CSV, Excel, JSON, and TSV files are allowed.")


def build_preview(filename: str, content: bytes) -> FilePreview:
    data = parse_file(filename, content)
    first = data[0] if data else None
    columns = list(first.keys()) if isinstance(first, dict) else []

    logger.info(f"文件解析完成: name={filename}, rows={len(data)}, columns={len(columns)}")
    return FilePreview(
        original_name=filename,
        size=len(content),
        row_count=len(data),
        columns=columns,
        preview=data[:PREVIEW_ROWS],
    )


def process_uploads(files: List[Tuple[str, bytes]]) -> List[FilePreview]:
    """
    校验并解析一批上传文件

    Args:
        files: (文件名, 文件内容) 列表

    Raises:
        ValidationError: 文件数量、大小或类型不合法
    """
    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > MAX_FILES:
        raise ValidationError(f"Too many files. At most {MAX_FILES} files can be uploaded at once.")

    limit = max_upload_bytes()
    for filename, content in files:
        if _extension(filename) not in ALLOWED_EXTENSIONS:
            raise ValidationError("Invalid file type. Only CSV, Excel, JSON, and TSV files are allowed.")
        if len(content) > limit:
            raise ValidationError(f"File too large: {filename}")

    return [build_preview(filename, content) for filename, content in files]


async def read_uploads(files: List[UploadFile]) -> List[Tuple[str, bytes]]:
    """
    读取上传文件内容，每个文件最多读取 max_upload_bytes() + 1 字节

    Raises:
        ValidationError: 文件数量超出限制或文件过大
    """
    if len(files) > MAX_FILES:
        raise ValidationError(f"Too many files. At most {MAX_FILES} files can be uploaded at once.")

    limit = max_upload_bytes()
    contents = []
    for upload in files:
        filename = upload.filename or ""
        content = await upload.read(limit + 1)
        if len(content) > limit:
            raise ValidationError(f"File too large: {filename}")
        contents.append((filename, content))
    return contents
