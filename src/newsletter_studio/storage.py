import json
import logging
from pathlib import Path
from typing import Protocol

import httpx
from pydantic import BaseModel

from .config import Settings
from .models import ContentSchema

logger = logging.getLogger(__name__)


class SaveError(RuntimeError):
    """A save target could not store the payload."""


class SavePayload(BaseModel):
    document_id: str
    sequence_number: int
    content: ContentSchema
    html: str


class SaveResult(BaseModel):
    ok: bool
    location: str = ""
    error: str = ""


class SaveTarget(Protocol):
    async def save(self, payload: SavePayload) -> str:
        """Store the payload and return where it went. Raises SaveError."""
        ...


def _stem(payload: SavePayload) -> str:
    return f"{payload.sequence_number}-{payload.document_id or 'draft'}"


class FileSaveTarget:
    """Writes the content schema and compiled HTML next to each other."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    async def save(self, payload: SavePayload) -> str:
        stem = _stem(payload)
        json_path = self.output_dir / f"{stem}.json"
        html_path = self.output_dir / f"{stem}.html"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            json_path.write_text(
                json.dumps(payload.content.model_dump(mode="json"), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            html_path.write_text(payload.html, encoding="utf-8")
        except OSError as exc:
            raise SaveError(f"Could not write {stem} to {self.output_dir}: {exc}") from exc
        logger.info(f"Saved newsletter to {json_path} and {html_path}")
        return str(json_path)


class HttpSaveTarget:
    """PUTs the payload to ``{base_url}/newsletters/{document_id}``."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("HTTP save target needs a base URL")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def url_for(self, payload: SavePayload) -> str:
        return f"{self.base_url}/newsletters/{payload.document_id or 'draft'}"

    async def save(self, payload: SavePayload) -> str:
        url = self.url_for(payload)
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.put(url, json=payload.model_dump(mode="json"), headers=headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SaveError(f"Save rejected by {url}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SaveError(f"Could not reach {url}: {exc}") from exc

        location = resp.headers.get("Location", url)
        logger.info(f"Saved newsletter {payload.document_id} to {location}")
        return location


def build_save_target(config: Settings) -> SaveTarget:
    if config.save_target == "http":
        return HttpSaveTarget(config.save_base_url, config.save_api_key, config.save_timeout)
    return FileSaveTarget(config.output_dir)
