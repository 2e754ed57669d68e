"""
Custom store source connector (Firestore REST v1).

Reads two collections with list/get-all semantics:
  - `matches`: flat match documents with an optional `leagueId` foreign key
  - `leagues`: id -> {name, country, logo}

Matches are emitted league by league, in league-document order, and a match
whose league cannot be resolved is left out. Firestore typed values are
decoded to plain Python values before parsing.
"""
from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Optional

from shared.config import Settings, get_settings
from shared.models.enums import SourceName
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from ingest.errors import FetchFailure
from ingest.providers.base import BaseSource

logger = get_logger(__name__)

DEFAULT_LEAGUE_ID = "other"
MAX_PAGES = 50

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def _decode_timestamp(raw: str) -> Optional[datetime]:
    # Firestore emits up to nanosecond precision
    text = _FRACTION_RE.sub(r".\1", raw.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def decode_value(value: Any) -> Any:
    """Decode one Firestore `Value` object."""
    if not isinstance(value, dict):
        return None
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        try:
            return int(value["integerValue"])
        except (TypeError, ValueError):
            return None
    if "doubleValue" in value:
        try:
            return float(value["doubleValue"])
        except (TypeError, ValueError):
            return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "nullValue" in value:
        return None
    if "timestampValue" in value:
        return _decode_timestamp(str(value["timestampValue"]))
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields"))
    if "arrayValue" in value:
        return [decode_value(v) for v in (value["arrayValue"] or {}).get("values", [])]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        return value["geoPointValue"]
    if "bytesValue" in value:
        return value["bytesValue"]
    return None


def decode_fields(fields: Any) -> dict[str, Any]:
    """Decode a Firestore `fields` map into a plain dict."""
    if not isinstance(fields, dict):
        return {}
    return {key: decode_value(val) for key, val in fields.items()}


def document_id(name: Any) -> str:
    """Last path segment of a document resource name."""
    return str(name or "").rsplit("/", 1)[-1]


class CustomStoreSource(BaseSource):
    """Firestore-backed custom match feed."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: SourceHTTPClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._settings = settings
        headers: dict[str, str] = {}
        if settings.firestore_bearer_token:
            headers["Authorization"] = f"Bearer {settings.firestore_bearer_token}"
        http_client = http_client or SourceHTTPClient(
            source_name=SourceName.CUSTOM_STORE.value,
            base_url=settings.firestore_base_url,
            headers=headers,
            timeout_s=settings.source_timeout_s,
        )
        super().__init__(
            name=SourceName.CUSTOM_STORE,
            http_client=http_client,
            timeout_s=settings.source_timeout_s,
            configured=settings.custom_store_enabled and settings.custom_store_configured,
        )

    def _collection_path(self, collection: str) -> str:
        project = self._settings.firestore_project_id
        return f"/projects/{project}/databases/(default)/documents/{collection}"

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """
        Read every document of a collection, following page tokens.

        Returns:
            Documents as {"id": ..., "fields": {...decoded...}} in store order.
        """
        path = self._collection_path(collection)
        params: dict[str, Any] = {"pageSize": self._settings.firestore_page_size}
        if self._settings.firestore_api_key:
            params["key"] = self._settings.firestore_api_key

        documents: list[dict[str, Any]] = []
        for _ in range(MAX_PAGES):
            data = await self._http.get_json(path, params=params)
            raw_docs = data.get("documents") or []
            if not isinstance(raw_docs, list):
                raise FetchFailure(self._name, f"`documents` is not a list in {collection}")
            for doc in raw_docs:
                if not isinstance(doc, dict):
                    continue
                documents.append({
                    "id": document_id(doc.get("name")),
                    "fields": decode_fields(doc.get("fields")),
                })
            token = data.get("nextPageToken")
            if not token:
                break
            params = {**params, "pageToken": token}
        else:
            logger.warning("custom_store_page_limit_reached", collection=collection, pages=MAX_PAGES)

        return documents

    async def _fetch_raw(self) -> list[Any]:
        match_docs, league_docs = await asyncio.gather(
            self.list_documents(self._settings.firestore_matches_collection),
            self.list_documents(self._settings.firestore_leagues_collection),
        )

        by_league: dict[str, list[dict[str, Any]]] = {}
        for doc in match_docs:
            league_id = doc["fields"].get("leagueId") or DEFAULT_LEAGUE_ID
            by_league.setdefault(str(league_id), []).append(doc)

        entries: list[dict[str, Any]] = []
        for league_doc in league_docs:
            lf = league_doc["fields"]
            league = {
                "id": league_doc["id"],
                "name": lf.get("name"),
                "country": lf.get("country"),
                "logo": lf.get("logo"),
            }
            for doc in by_league.pop(league_doc["id"], []):
                entries.append({"doc_id": doc["id"], "fields": doc["fields"], "league": league})

        orphaned = sum(len(docs) for docs in by_league.values())
        if orphaned:
            logger.debug(
                "custom_store_unresolved_league",
                matches=orphaned,
                league_ids=sorted(by_league),
            )
        return entries
