from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Generic, Iterable, Iterator, Optional, TypeVar

from pydantic import ValidationError

from dashcache.services.config import Settings, get_settings
from dashcache.services.errors import NotFoundError, PersistenceError, TransportError
from dashcache.services.events import CACHE_UPDATED, CACHE_WARNING, EventBus
from dashcache.services.models import Record, Schema, SyncStatus, parse_timestamp
from dashcache.services.storage import JsonFileStorage, Storage
from dashcache.services.transport import ApiClient

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Schema)
R = TypeVar("R", bound=Record)


def is_temporary_id(record_id: Optional[int]) -> bool:
    return record_id is not None and record_id < 0


def find_record(items: Iterable[R], record_id: int) -> Optional[R]:
    for item in items:
        if item.id == record_id:
            return item
    return None


def replace_record(items: list[R], record: R) -> list[R]:
    return [record if item.id == record.id else item for item in items]


class BaseDataCache(ABC, Generic[E]):
    """Envelope ownership, freshness, persistence and backend sync.

    Subclasses declare the envelope model, which collection decides whether
    the cache is populated, and how identifiers are referenced across
    collections; the entity-specific CRUD lives in the subclasses.
    """

    envelope_model: ClassVar[type]
    primary_collection: ClassVar[str]
    collections: ClassVar[tuple[str, ...]]
    default_storage_key: ClassVar[str]
    # model -> (collection, attribute) pairs holding that model's identifier,
    # primary key first.
    identifier_refs: ClassVar[dict[type, tuple[tuple[str, str], ...]]] = {}

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        api: Optional[ApiClient] = None,
        storage: Optional[Storage] = None,
        events: Optional[EventBus] = None,
        storage_key: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.ttl_seconds = self.settings.cache_ttl_seconds
        self.enable_persistence = self.settings.enable_persistence
        self.storage_key = storage_key or self.default_storage_key
        self.api = api or ApiClient(
            self.settings.api_base_url,
            timeout_seconds=self.settings.request_timeout_seconds,
            retry_attempts=self.settings.fetch_retry_attempts,
        )
        self.storage = storage if storage is not None else JsonFileStorage(self.settings.resolved_storage_dir)
        self.events = events or EventBus()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._last_temp_id = 0
        # Temporary ids deleted locally while their create may still be in flight.
        self._deleted_temp_ids: set[int] = set()
        self.envelope: E = self.envelope_model()
        self.load_from_storage()

    # --- hooks ---

    @abstractmethod
    def compute_dashboard(self) -> None: ...

    @abstractmethod
    def _seed(self) -> E: ...

    def _recompute(self) -> None:
        self.compute_dashboard()

    def _after_reconcile(self) -> None:
        pass

    def _keeps_local(self, collection: str, record: Record) -> bool:
        """Whether a local record survives a snapshot that replaces its collection."""
        return is_temporary_id(getattr(record, "id", None)) and record.sync_status != SyncStatus.SYNCED

    async def _after_create(self, record: Record) -> None:
        """Runs once a created record holds its server id, before the refresh."""

    # --- persistence ---

    def load_from_storage(self) -> None:
        if not self.enable_persistence:
            return
        try:
            raw = self.storage.get_item(self.storage_key)
            if not raw:
                return
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                raise ValueError("persisted cache is not a JSON object")
            # Fields added since the payload was written fall back to their defaults.
            merged = {**self.envelope_model().to_wire(), **parsed}
            self.envelope = self.envelope_model.model_validate(merged)
        except (PersistenceError, ValueError) as exc:
            logger.warning("Failed to load cache from storage (%s): %s", self.storage_key, exc)

    def save_to_storage(self) -> None:
        if not self.enable_persistence:
            return
        try:
            self.storage.set_item(self.storage_key, json.dumps(self.envelope.to_wire()))
        except PersistenceError as exc:
            logger.warning("Failed to save cache to storage (%s): %s", self.storage_key, exc)

    def clear_cache(self) -> None:
        self.envelope = self.envelope_model()
        self._last_temp_id = 0
        self._deleted_temp_ids.clear()
        try:
            self.storage.remove_item(self.storage_key)
        except PersistenceError as exc:
            logger.warning("Failed to remove cache from storage (%s): %s", self.storage_key, exc)

    def set_options(
        self,
        *,
        api_base_url: Optional[str] = None,
        enable_persistence: Optional[bool] = None,
        storage_key: Optional[str] = None,
    ) -> None:
        if api_base_url is not None:
            self.api.base_url = api_base_url
        if enable_persistence is not None:
            self.enable_persistence = enable_persistence
        if storage_key:
            self.storage_key = storage_key
        self.save_to_storage()

    # --- freshness ---

    def _now_iso(self) -> str:
        return self._clock().astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

    def _mark_updated(self) -> None:
        self.envelope.last_updated = self._now_iso()
        self.save_to_storage()
        self.events.emit(CACHE_UPDATED, {"lastUpdated": self.envelope.last_updated})

    def _commit(self) -> None:
        self._recompute()
        self._mark_updated()

    def is_expired(self) -> bool:
        if not self.envelope.last_updated:
            return True
        try:
            last = parse_timestamp(self.envelope.last_updated)
        except ValueError:
            return True
        return (self._clock() - last).total_seconds() > self.ttl_seconds

    def _primary(self) -> list[Any]:
        return getattr(self.envelope, self.primary_collection)

    def _warn(self, message: str, exc: Exception) -> None:
        status = exc.status if isinstance(exc, TransportError) else None
        logger.warning("%s: %s", message, exc)
        self.events.emit(CACHE_WARNING, {"message": f"{message}: {exc}", "status": status})

    async def fetch_all_data(self, force_refresh: bool = False) -> E:
        if not force_refresh and not self.is_expired() and self._primary():
            logger.debug("Serving cached snapshot from %s", self.envelope.last_updated)
            return self.envelope

        snapshot: Optional[E] = None
        try:
            payload = await self.api.fetch_snapshot()
            snapshot = self.envelope_model.model_validate(payload)
        except TransportError as exc:
            self._warn("Using local cache, backend unavailable", exc)
        except ValidationError as exc:
            self._warn("Using local cache, snapshot rejected", exc)

        async with self._lock:
            if snapshot is not None:
                self._reconcile(snapshot)
                logger.info("Snapshot refreshed (%d %s)", len(self._primary()), self.primary_collection)
            elif not self._primary():
                logger.info("Backend unavailable and cache empty, loading demo records")
                seed = self._seed()
                for name in self.collections:
                    setattr(self.envelope, name, getattr(seed, name))
            self._commit()
        return self.envelope

    def _reconcile(self, snapshot: E) -> None:
        for name in self.collections:
            kept = [r for r in getattr(self.envelope, name) if self._keeps_local(name, r)]
            setattr(self.envelope, name, [*getattr(snapshot, name), *kept])
        self._after_reconcile()

    # --- identifiers ---

    def _identified_records(self) -> Iterator[Any]:
        for name in self.collections:
            for record in getattr(self.envelope, name):
                if hasattr(record, "id"):
                    yield record

    def _next_temp_id(self) -> int:
        # Negative ids never collide with server ids; staying below every id in
        # the envelope keeps them unique across reloads.
        lowest = min((r.id for r in self._identified_records()), default=0)
        self._last_temp_id = min(self._last_temp_id, lowest, 0) - 1
        return self._last_temp_id

    def _replace_identifier(self, model: type, old_id: int, new_id: int) -> None:
        for collection, attribute in self.identifier_refs.get(model, ()):
            for record in getattr(self.envelope, collection):
                if getattr(record, attribute) == old_id:
                    setattr(record, attribute, new_id)
        logger.info("Reconciled %s id %s -> %s", model.__name__, old_id, new_id)

    def _require(self, collection: str, record_id: int, entity: str) -> Any:
        record = find_record(getattr(self.envelope, collection), record_id)
        if record is None:
            raise NotFoundError(entity, record_id)
        return record

    # --- backend sync ---

    async def _push(self, record: Optional[Record], method: str, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        try:
            return await self.api.request(method, path, body)
        except TransportError:
            if record is not None:
                async with self._lock:
                    record.sync_status = SyncStatus.FAILED
                    self._mark_updated()
            logger.warning("%s %s failed, local change kept unconfirmed", method, path)
            raise

    async def _sync_create(self, record: Record, path: str) -> None:
        model = type(record)
        temp_id = record.id
        posted = record.to_payload()
        response = await self._push(record, "POST", path, posted)
        server_id = response.get("id") if isinstance(response, dict) else None
        if not isinstance(server_id, int):
            server_id = temp_id
        location = f"{path}/{server_id}"

        live: Optional[Record] = None
        needs_put = False
        async with self._lock:
            deleted = temp_id in self._deleted_temp_ids
            self._deleted_temp_ids.discard(temp_id)
            if not deleted:
                if server_id != temp_id:
                    self._replace_identifier(model, temp_id, server_id)
                    record.id = server_id
                collection = self.identifier_refs[model][0][0]
                live = find_record(getattr(self.envelope, collection), server_id)
                # Local edits made while the POST was in flight.
                needs_put = live is not None and live.to_payload() != posted
                record.sync_status = SyncStatus.SYNCED
                if live is not None and not needs_put:
                    live.sync_status = SyncStatus.SYNCED
            self._mark_updated()

        if deleted:
            if is_temporary_id(server_id):
                logger.warning("Deleted %s %s was created without a server id", model.__name__, temp_id)
            else:
                await self._push(None, "DELETE", location)
        elif live is not None:
            if needs_put:
                await self._push(live, "PUT", location, live.to_payload())
                async with self._lock:
                    live.sync_status = SyncStatus.SYNCED
                    self._mark_updated()
            await self._after_create(live)
        await self.fetch_all_data(force_refresh=True)

    def _stage(self, current: Record, updated: Record) -> bool:
        """Mark ``updated`` pending; True when its create has to be resent."""
        resend = is_temporary_id(getattr(current, "id", None)) and current.sync_status == SyncStatus.FAILED
        updated.sync_status = SyncStatus.PENDING
        return resend

    async def _sync_update(self, record: Record, path: str, resend_create: bool = False) -> None:
        if is_temporary_id(record.id):
            # A failed create is resent with the new fields; a create still in
            # flight picks the change up when it completes.
            if resend_create:
                await self._sync_create(record, path.rsplit("/", 1)[0])
            return
        await self._push(record, "PUT", path, record.to_payload())
        async with self._lock:
            record.sync_status = SyncStatus.SYNCED
            self._mark_updated()
        await self.fetch_all_data(force_refresh=True)

    async def _sync_delete(self, record_id: int, path: str, refresh: bool) -> None:
        if is_temporary_id(record_id):
            self._deleted_temp_ids.add(record_id)
        else:
            await self._push(None, "DELETE", path)
        if refresh:
            await self.fetch_all_data(force_refresh=True)
