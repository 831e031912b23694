"""Fetch the plain text of a legal basis document.

Review note:
- 文档已在别处完成 OCR / PDF 抽取，这里只负责把纯文本取回来。
- http(s) 地址走 httpx，其余按本地文件路径以 UTF-8 读取。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
import asyncio

import httpx

from legaldocs.config import settings
from legaldocs.services.errors import JobFailure


class DocumentTextSource(Protocol):
    async def fetch_text(self, url: str) -> str:
        ...


def _is_remote(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


class HttpDocumentTextSource:
    """Remote text over httpx, local paths from disk."""

    def __init__(self, timeout_sec: float | None = None) -> None:
        self.timeout_sec = float(timeout_sec or settings.DOCUMENT_FETCH_TIMEOUT_SEC)

    async def fetch_text(self, url: str) -> str:
        url = (url or "").strip()
        if not url:
            raise JobFailure("Legal basis has no document")
        if _is_remote(url):
            return await self._fetch_remote(url)
        return await self._read_local(url)

    async def _fetch_remote(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, follow_redirects=True) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise JobFailure(f"Failed to fetch document text: {exc}") from exc
        return resp.text

    async def _read_local(self, path: str) -> str:
        file_path = Path(path)
        if not file_path.is_file():
            raise JobFailure(f"Document file not found: {path}")
        try:
            return await asyncio.to_thread(file_path.read_text, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise JobFailure(f"Failed to read document text: {exc}") from exc
