from __future__ import annotations

import json
from typing import Any, Optional


class DataCacheError(RuntimeError):
    pass


class NotFoundError(DataCacheError):
    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class TransportError(DataCacheError):
    """Backend call failed.

    ``status`` is ``None`` when the request never got a response (connection
    refused, timeout, DNS failure); otherwise it carries the HTTP status code
    together with the reason phrase and the raw response body.
    """

    def __init__(self, status: Optional[int], status_text: str = "", body: str = "") -> None:
        if status is None:
            message = f"Network error: {status_text or 'request failed'}"
        else:
            message = f"HTTP {status} {status_text}".rstrip()
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.body = body

    @property
    def is_network_error(self) -> bool:
        return self.status is None

    def json_body(self) -> Optional[dict[str, Any]]:
        if not self.body:
            return None
        try:
            value = json.loads(self.body)
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None


class PersistenceError(DataCacheError):
    pass
