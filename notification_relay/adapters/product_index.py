"""Search-index adapter for product stock lookups.

Mental model refresher:
- Outbound adapter over the Elasticsearch REST `_search` endpoint.
- One blocking call per lookup; the application layer runs it off the
  event loop and decides what a failure means.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from ..config import Settings


class ElasticsearchProductIndex:
    """Exact-match title lookups against one product index."""

    def __init__(
        self,
        base_url: str,
        *,
        index: str = "microservice_products",
        title_field: str = "title.keyword",
        api_key: str | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.title_field = title_field
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> ElasticsearchProductIndex:
        return cls(
            settings.elasticsearch_url,
            index=settings.elasticsearch_index,
            title_field=settings.elasticsearch_title_field,
            api_key=settings.elasticsearch_api_key,
            timeout_seconds=settings.elasticsearch_timeout_seconds,
        )

    def find_product(self, title: str) -> dict[str, Any] | None:
        """Return the `_source` of the first hit for `title`, or None.

        Titles are not guaranteed unique; the first hit the index returns wins.
        """
        query = {"size": 1, "query": {"term": {self.title_field: title}}}
        response = self._post_json(f"/{urllib.parse.quote(self.index, safe='')}/_search", query)
        hits = ((response.get("hits") or {}).get("hits")) or []
        if not hits:
            return None
        source = hits[0].get("_source")
        return source if isinstance(source, dict) else None

    def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        request = urllib.request.Request(
            f"{self.base_url}{path}",
            data=json.dumps(body).encode("utf-8"),
            method="POST",
        )
        request.add_header("Content-Type", "application/json")
        if self.api_key:
            request.add_header("Authorization", f"ApiKey {self.api_key}")

        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                status = int(response.getcode())
                if status < 200 or status >= 300:
                    raise RuntimeError(f"Elasticsearch search failed with status {status}")
                parsed = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            details = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(
                f"Elasticsearch search failed HTTP {exc.code}: {details[:300]}"
            ) from exc
        except urllib.error.URLError as exc:
            raise RuntimeError(f"Elasticsearch search failed: {exc.reason}") from exc

        if not isinstance(parsed, dict):
            raise RuntimeError("Elasticsearch response must be a JSON object")
        return parsed
