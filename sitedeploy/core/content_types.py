"""按扩展名推断上传 blob 的 Content-Type"""

from __future__ import annotations

from pathlib import PurePath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "font/otf",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
}


def content_type_for_extension(extension: str) -> str:
    """扩展名（大小写不敏感，可省略前导点）→ MIME"""
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def content_type_for(path: str | PurePath) -> str:
    """文件路径 → MIME，只看最后一个扩展名"""
    return content_type_for_extension(PurePath(path).suffix)
