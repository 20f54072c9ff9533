"""Pull/merge/push cycle for one synchronized document.

`DocumentSync` holds the local cache of a single remote document and its
last-synced signature. Periodic pulls and local mutations share one
asyncio lock, so a tick never overlaps an in-flight write to the same
document while different documents still sync concurrently.
"""

import asyncio
import copy
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from familyhub.errors import FamilyHubError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutator = Callable[[T], None]
ChangeListener = Callable[[str, object], None]

NOT_SYNCED_MESSAGE = "Your change is saved on this device but may not have reached the server yet."
DISCARDED_MESSAGE = "Some changes made on this device never reached the server and were discarded."


class SyncState(str, enum.Enum):
    COLD = "cold"
    HYDRATING = "hydrating"
    LIVE = "live"
    MUTATING = "mutating"


@dataclass
class MutationResult(Generic[T]):
    document: T
    synced: bool
    message: Optional[str] = None


class DocumentSync(Generic[T]):
    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[T]],
        push: Callable[[T], Awaitable[T]],
        signature: Callable[[T], Optional[str]],
        on_change: ChangeListener | None = None,
    ):
        self.name = name
        self._fetch = fetch
        self._push = push
        self._signature = signature
        self._on_change = on_change
        self._lock = asyncio.Lock()
        self._pending: list[Mutator] = []
        self.cache: Optional[T] = None
        self.signature: Optional[str] = None
        self.state = SyncState.COLD

    @property
    def has_pending(self) -> bool:
        """True while a local edit has not been confirmed by the server."""
        return bool(self._pending)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _adopt(self, document: T) -> None:
        self.cache = document
        self.signature = self._signature(document)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.name, self.cache)

    # --- Whole-cache replacement ---

    async def hydrate(self) -> T:
        """Initial pull. Leaves the document COLD if it fails."""
        async with self._lock:
            self.state = SyncState.HYDRATING
            try:
                document = await self._fetch()
            except FamilyHubError:
                self.state = SyncState.COLD
                raise
            self._pending.clear()
            self._adopt(document)
            self.state = SyncState.LIVE
        self._notify()
        return document

    async def accept(self, document: Optional[T], replay: bool = False) -> MutationResult[T] | None:
        """Adopt an authoritative copy obtained outside the pull cycle.

        With `replay`, unsynced local edits are pushed again on top of the
        new copy. Otherwise they are discarded and the returned result says
        so. Returns None when nothing was pending.
        """
        async with self._lock:
            before = self.signature
            result = None
            if self._pending and replay and document is not None:
                result = await self._replay_onto(document)
            else:
                if self._pending:
                    logger.warning("%s: discarding %d unsynced edit(s)", self.name, len(self._pending))
                    result = MutationResult(document, synced=False, message=DISCARDED_MESSAGE)
                self._pending.clear()
                self._adopt(document)
            self.state = SyncState.LIVE if self.cache is not None else SyncState.COLD
            changed = self.signature != before
        if changed:
            self._notify()
        return result

    async def _replay_onto(self, document: T) -> MutationResult[T]:
        self._adopt(document)
        self.state = SyncState.MUTATING
        try:
            return await self._mutate_locked(None)
        except FamilyHubError as e:
            logger.warning("%s: unsynced edit(s) rejected by the server, discarding: %s", self.name, e)
            self._pending.clear()
            self._adopt(document)
            return MutationResult(document, synced=False, message=DISCARDED_MESSAGE)

    # --- Pull ---

    async def pull(self, silent: bool = True) -> bool:
        """Fetch the remote copy and adopt it if its content changed.

        Returns True when the cache was replaced. A failed fetch never
        touches the cache; in silent mode it is logged and swallowed.
        """
        async with self._lock:
            try:
                remote = await self._fetch()
            except FamilyHubError as e:
                if e.retryable:
                    logger.debug("%s pull failed, will retry: %s", self.name, e)
                elif silent:
                    logger.warning("%s pull failed: %s", self.name, e)
                if silent:
                    return False
                raise

            signature = self._signature(remote)
            if signature == self.signature:
                return False
            if self._pending:
                # Unsynced local edits win until they are pushed
                logger.info("%s changed remotely; keeping %d unsynced local edit(s)", self.name, len(self._pending))
                return False

            self._adopt(remote)
            self.state = SyncState.LIVE
        self._notify()
        return True

    # --- Mutate ---

    async def mutate(self, mutator: Mutator | None) -> MutationResult[T]:
        """Apply `mutator` to a freshly pulled copy and push the result.

        Earlier edits that failed to push are replayed first, in order.
        Retryable failures keep the edit in the local cache and report
        `synced=False`; terminal failures restore the cache and raise.
        """
        async with self._lock:
            self.state = SyncState.MUTATING
            try:
                result = await self._mutate_locked(mutator)
            finally:
                self.state = SyncState.LIVE if self.cache is not None else SyncState.COLD
        self._notify()
        return result

    async def retry(self) -> MutationResult[T] | None:
        """Push unsynced edits again. Returns None when nothing is pending."""
        if not self._pending:
            return None
        return await self.mutate(None)

    async def _mutate_locked(self, mutator: Mutator | None) -> MutationResult[T]:
        try:
            base = await self._fetch()
        except FamilyHubError as e:
            if not e.retryable or self.cache is None:
                raise
            return self._apply_offline(mutator, e)

        draft = copy.deepcopy(base)
        replay = []
        for pending in self._pending:
            try:
                pending(draft)
                replay.append(pending)
            except FamilyHubError as e:
                logger.warning("%s: dropping unsynced edit that no longer applies: %s", self.name, e)
        if mutator is not None:
            mutator(draft)

        previous = (self.cache, self.signature)
        self.cache = draft
        try:
            saved = await self._push(draft)
        except FamilyHubError as e:
            if not e.retryable:
                self.cache, self.signature = previous
                raise
            self._pending = replay + ([mutator] if mutator is not None else [])
            logger.info("%s push failed, keeping edit locally: %s", self.name, e)
            return MutationResult(draft, synced=False, message=NOT_SYNCED_MESSAGE)

        self._pending.clear()
        self._adopt(saved)
        return MutationResult(saved, synced=True)

    def _apply_offline(self, mutator: Mutator | None, error: FamilyHubError) -> MutationResult[T]:
        logger.info("%s unreachable, applying edit locally: %s", self.name, error)
        draft = copy.deepcopy(self.cache)
        if mutator is not None:
            mutator(draft)
            self._pending.append(mutator)
        self.cache = draft
        return MutationResult(draft, synced=False, message=NOT_SYNCED_MESSAGE)
