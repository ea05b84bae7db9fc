import asyncio
import json
from typing import Any

import aiohttp
from loguru import logger

from sessionkeeper.errors import SourceUnavailable, TransportFailure

PASTE_RAW_URL = "https://pastebin.com/raw/{paste_id}"
SESSION_ID_DELIMITER = "&"


def resolve_paste_url(session_id: str, url_template: str = PASTE_RAW_URL) -> str:
    """Turn a ``<prefix>&<paste id>`` session identifier into a raw paste URL."""
    _, sep, paste_id = session_id.partition(SESSION_ID_DELIMITER)
    paste_id = paste_id.strip()
    if not sep or not paste_id:
        raise SourceUnavailable(
            f"SESSION_ID must look like '<prefix>{SESSION_ID_DELIMITER}<paste id>'"
        )
    return url_template.format(paste_id=paste_id)


def coerce_text(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return json.dumps(payload)


class PasteBackend:
    def __init__(self, url_template: str = PASTE_RAW_URL):
        self.url_template = url_template

    async def fetch_raw(self, url: str) -> Any:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    if response.content_type == "application/json":
                        return await response.json()
                    return await response.text()
        except aiohttp.ClientResponseError as e:
            if e.status == 404:
                raise SourceUnavailable(f"Paste not found: {url}") from e
            raise TransportFailure(f"Paste fetch failed with HTTP {e.status}: {url}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportFailure(f"Paste fetch failed: {e!r}") from e

    async def fetch_session(self, session_id: str) -> str:
        url = resolve_paste_url(session_id, self.url_template)
        logger.debug(f"Fetching legacy session from {url}")
        return coerce_text(await self.fetch_raw(url))
