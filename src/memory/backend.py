"""Adapter for the remote key-fact store (one POST per named action).

The backend is an eventually-consistent, keyword-searchable fact store. Every
failure here is non-fatal: retrieval degrades to "no context", writes and
logs are dropped after being logged.
"""

import json
from datetime import datetime

import httpx
import structlog

from observability import metrics
from shared_types import Role

from .models import ChatMessage, DirectorMemory, MediaFile, MemoryEntry

logger = structlog.get_logger()


class BackendError(Exception):
    """Backend request failed or returned something unreadable."""


def _parse_timestamp(value) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value).replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class MemoryBackendAdapter:
    """Issues ``{"action": ..., ...}`` requests to the fact store."""

    def __init__(self, url: str | None, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.url = url or ""
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def _post(self, action: str, **fields) -> dict:
        if not self.enabled:
            raise BackendError("backend url not configured")
        body = json.dumps({"action": action, **fields})
        try:
            response = await self.client.post(
                self.url, content=body, headers={"Content-Type": "text/plain"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"{action}: {e}") from e
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"{action}: unreadable response") from e
        return data if isinstance(data, dict) else {}

    async def get_recent_chat(self) -> list[ChatMessage]:
        """Ordered history rows ``[timestamp, role, content]`` from the backend."""
        try:
            data = await self._post("get_recent_chat")
        except BackendError as e:
            logger.warning("backend.history_failed", error=str(e))
            return []

        messages = []
        for row in data.get("history") or []:
            if not isinstance(row, (list, tuple)) or len(row) < 3:
                continue
            try:
                role = Role(str(row[1]).lower())
            except ValueError:
                continue
            messages.append(
                ChatMessage(role=role, content=str(row[2]), timestamp=_parse_timestamp(row[0]))
            )
        return messages

    async def log_chat(self, role: Role, content: str) -> bool:
        try:
            await self._post("log_chat", role=role.value, content=content)
        except BackendError as e:
            logger.warning("backend.log_failed", role=role.value, error=str(e))
            return False
        return True

    async def retrieve(self, keywords: list[str]) -> list[str]:
        """Memories matching any keyword; empty on miss or failure."""
        if not keywords:
            return []
        metrics.counter("backend.retrieve")
        try:
            data = await self._post("retrieve", keywords=list(keywords))
        except BackendError as e:
            logger.warning("backend.retrieve_failed", keywords=keywords, error=str(e))
            return []
        if not data.get("found"):
            return []
        return [str(m) for m in data.get("relevant_memories") or []]

    async def store_atomic(self, entry: MemoryEntry) -> bool:
        try:
            await self._post(
                "store_atomic",
                fact=entry.fact,
                entities=entry.entities,
                topics=entry.topics,
                importance=entry.importance,
            )
        except BackendError as e:
            logger.error("backend.store_failed", fact=entry.fact[:80], error=str(e))
            return False
        metrics.counter("backend.stored")
        return True

    async def retrieve_director_memory(self, keywords: list[str]) -> list[DirectorMemory]:
        if not keywords:
            return []
        try:
            data = await self._post("retrieve_director_memory", keywords=list(keywords))
        except BackendError as e:
            logger.warning("backend.director_retrieve_failed", keywords=keywords, error=str(e))
            return []
        if not data.get("found"):
            return []
        return [DirectorMemory.from_dict(m) for m in data.get("relevant_memories") or []]

    async def store_director_fact(self, fact: str, entity: str, tags: str = "Metadata") -> bool:
        try:
            await self._post("store_director_fact", fact=fact, entity=entity, tags=tags)
        except BackendError as e:
            logger.error("backend.director_store_failed", fact=fact[:80], error=str(e))
            return False
        return True

    async def director_search(
        self, query: str, constraints: list[str], exclude_constraints: list[str]
    ) -> list[MediaFile]:
        try:
            data = await self._post(
                "director_search",
                query=query,
                constraints=list(constraints),
                exclude_constraints=list(exclude_constraints),
            )
        except BackendError as e:
            logger.warning("backend.director_search_failed", error=str(e))
            return []
        if not data.get("found"):
            return []
        return [MediaFile.from_dict(f) for f in data.get("files") or [] if isinstance(f, dict)]

    async def search_entity_visuals(self, entity_name: str) -> list[str]:
        """Image URLs for one entity; empty when none are found."""
        try:
            data = await self._post("search_entity_visuals", entityName=entity_name)
        except BackendError as e:
            logger.warning("backend.visuals_failed", entity=entity_name, error=str(e))
            return []
        if not data.get("found"):
            return []
        return [img["url"] for img in data.get("images") or [] if isinstance(img, dict) and img.get("url")]

    async def close(self):
        await self.client.aclose()
