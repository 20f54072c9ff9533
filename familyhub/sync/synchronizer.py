"""Per-session client synchronizer.

Keeps a local cache of the user's family document and planner document,
pulls both on independent change feeds and routes every local edit
through a pull-mutate-push cycle. Concurrent edits from other devices are
resolved last-write-wins at whole-document granularity: re-fetching right
before each write narrows the race window but does not close it.

Background ticks are silent. Explicit actions raise `familyhub.errors`
types carrying user-facing text.
"""

import asyncio
import logging
from datetime import date, datetime, timezone

from pydantic import ValidationError as SchemaError

from familyhub.config import settings
from familyhub.errors import Conflict, NotFound, ValidationError, from_schema_error
from familyhub.schemas.family import ChatMessage, FamilyDocument, Reminder
from familyhub.schemas.planner import PlannerEntry
from familyhub.schemas.user import UserResponse
from familyhub.sync.client import FamilyHubClient
from familyhub.sync.document import ChangeListener, DocumentSync, MutationResult, SyncState
from familyhub.sync.feed import ChangeFeed, PollingFeed
from familyhub.sync.signature import entry_order_key, family_signature, ordered_chat, planner_signature
from familyhub.utils.security import generate_code, new_id, normalize_code

logger = logging.getLogger(__name__)

# Fields a caller may set on a planner entry
ENTRY_FIELDS = {"type", "title", "notes", "priority", "start_date", "end_date", "start_time", "end_time"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _build(model, **data):
    try:
        return model.model_validate(data)
    except SchemaError as e:
        raise from_schema_error(e) from e


def assign_share_codes(entries: list[PlannerEntry]) -> None:
    """Give every entry without a share code a fresh one, unique within the list."""
    taken = {e.share_code for e in entries if e.share_code}
    for entry in entries:
        if not entry.share_code:
            entry.share_code = generate_code(taken)
            taken.add(entry.share_code)


class ClientSynchronizer:
    def __init__(
        self,
        client: FamilyHubClient,
        username: str,
        *,
        membership: str | None = None,
        family_feed: ChangeFeed | None = None,
        planner_feed: ChangeFeed | None = None,
        on_change: ChangeListener | None = None,
    ):
        """`membership` is the device's cached family pointer, if any."""
        self._client = client
        self.username = username
        self.membership = membership
        self.user: UserResponse | None = None
        # User-facing text from the last family action, when unsynced edits were not saved
        self.notice: str | None = None

        interval = settings.sync_interval_seconds
        self._family_feed = family_feed or PollingFeed(interval, name="family-sync")
        self._planner_feed = planner_feed or PollingFeed(interval, name="planner-sync")
        self._tasks: list[asyncio.Task] = []
        self._hydrating = False
        self._live = False

        self.family: DocumentSync[FamilyDocument] = DocumentSync(
            "family",
            fetch=self._fetch_family,
            push=client.replace_family,
            signature=family_signature,
            on_change=on_change,
        )
        self.planner: DocumentSync[list[PlannerEntry]] = DocumentSync(
            "planner",
            fetch=lambda: client.get_planner(username),
            push=lambda entries: client.replace_planner(username, entries),
            signature=planner_signature,
            on_change=on_change,
        )

    # --- State ---

    @property
    def state(self) -> SyncState:
        if self._hydrating:
            return SyncState.HYDRATING
        if SyncState.MUTATING in (self.family.state, self.planner.state):
            return SyncState.MUTATING
        return SyncState.LIVE if self._live else SyncState.COLD

    @property
    def current_family(self) -> FamilyDocument | None:
        return self.family.cache

    @property
    def entries(self) -> list[PlannerEntry]:
        return list(self.planner.cache or [])

    @property
    def chat_messages(self) -> list[ChatMessage]:
        family = self.family.cache
        return ordered_chat(family.chat) if family else []

    @property
    def role(self) -> str | None:
        family = self.family.cache
        member = family.member(self.username) if family else None
        if member:
            return member.role
        return self.user.role if self.user else None

    @property
    def is_owner(self) -> bool:
        return self.family.cache is not None and self.role == "owner"

    @property
    def is_adult(self) -> bool:
        return self.family.cache is not None and self.role in ("owner", "adult")

    # --- Lifecycle ---

    async def hydrate(self) -> None:
        """Initial pull of user, family and planner (family and planner concurrently)."""
        self._hydrating = True
        try:
            self.user = await self._client.get_user(self.username)
            pointer = self.user.family_id or self.membership
            await asyncio.gather(self._hydrate_family(pointer), self.planner.hydrate())
            self._live = True
        finally:
            self._hydrating = False
        logger.info(
            "Session hydrated for %s: family=%s entries=%d",
            self.username, self.membership, len(self.entries),
        )

    async def start(self) -> None:
        """Hydrate if needed and start both change feeds."""
        if not self._live:
            await self.hydrate()
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._family_feed.run(self.sync_family), name="family-sync"),
            asyncio.create_task(self._planner_feed.run(self.sync_planner), name="planner-sync"),
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def __aenter__(self) -> "ClientSynchronizer":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()

    # --- Membership ---

    async def resolve_family(self, pointer: str | None) -> FamilyDocument | None:
        """Resolve a membership pointer as a family id, then as an invite code.

        Clears the membership when neither resolves.
        """
        if not pointer:
            self.membership = None
            return None
        try:
            family = await self._client.get_family(pointer)
        except NotFound:
            try:
                family = await self._client.get_family_by_code(normalize_code(pointer))
            except NotFound:
                logger.warning("Membership pointer %s no longer resolves; clearing it", pointer)
                self.membership = None
                return None
        self.membership = family.id
        return family

    async def _hydrate_family(self, pointer: str | None) -> None:
        await self._accept_family(await self.resolve_family(pointer))

    async def _accept_family(self, family: FamilyDocument | None) -> FamilyDocument | None:
        """Adopt a family returned by an action.

        Unsynced edits are replayed when it is the same family and dropped
        otherwise; `notice` tells the caller whether anything was lost.
        """
        current = self.family.cache
        same = family is not None and current is not None and current.id == family.id
        result = await self.family.accept(family, replay=same)
        self.notice = result.message if result is not None and not result.synced else None
        return self.family.cache

    async def _fetch_family(self) -> FamilyDocument:
        if not self.membership:
            raise NotFound("You are not in a family yet")
        return await self._client.get_family(self.membership)

    def _require_family(self) -> FamilyDocument:
        if not self.membership or self.family.cache is None:
            raise ValidationError("You are not in a family yet")
        return self.family.cache

    def _require_owner(self, action: str) -> FamilyDocument:
        family = self._require_family()
        if not self.is_owner:
            raise ValidationError(f"Only the family owner can {action}")
        return family

    # --- Periodic sync ---

    async def sync_family(self, silent: bool = True) -> bool:
        if not self.membership:
            return False
        return await self.family.pull(silent=silent)

    async def sync_planner(self, silent: bool = True) -> bool:
        return await self.planner.pull(silent=silent)

    async def sync_all(self, silent: bool = True) -> tuple[bool, bool]:
        family_changed, planner_changed = await asyncio.gather(
            self.sync_family(silent), self.sync_planner(silent)
        )
        return family_changed, planner_changed

    async def retry_pending(self) -> None:
        """Manual retry of edits that did not reach the server."""
        await asyncio.gather(self.family.retry(), self.planner.retry())

    # --- Family actions ---

    async def create_family(self, name: str) -> FamilyDocument:
        if not name.strip():
            raise ValidationError("Family name is required")
        family = await self._client.create_family(name.strip(), self.username)
        self.membership = family.id
        await self._accept_family(family)
        self.user = await self._client.get_user(self.username)
        return family

    async def join_family(self, code: str, role: str = "adult") -> FamilyDocument:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Enter a family code")
        try:
            family, user = await self._client.join_family(self.username, normalized, role)
        except NotFound as e:
            raise NotFound("We couldn't find that family code. Double-check with the owner.") from e
        self.user = user
        self.membership = family.id
        return await self._accept_family(family)

    async def leave_family(self) -> None:
        family = self._require_family()
        _, user = await self._client.leave_family(family.id, self.username)
        self.user = user
        self.membership = None
        await self._accept_family(None)

    async def regenerate_code(self) -> FamilyDocument:
        family = self._require_owner("regenerate the invite code")
        updated = await self._client.regenerate_code(family.id)
        return await self._accept_family(updated)

    async def change_member_role(self, username: str, role: str) -> FamilyDocument:
        family = self._require_owner("change roles")
        updated, user = await self._client.update_member_role(family.id, username, role)
        if user and user.username == self.username:
            self.user = user
        return await self._accept_family(updated)

    async def send_chat(self, text: str) -> MutationResult[FamilyDocument]:
        self._require_family()
        text = text.strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        message = ChatMessage(id=new_id("chat"), username=self.username, message=text, created_at=_now())

        def append(family: FamilyDocument) -> None:
            family.chat.append(message)

        return await self.family.mutate(append)

    async def add_reminder(
        self,
        title: str,
        date: date | str | None = None,
        time: str = "",
        notes: str = "",
        priority: str = "normal",
        assigned_to: list[str] | None = None,
    ) -> MutationResult[FamilyDocument]:
        """Share a reminder with the family. Empty `assigned_to` means everyone."""
        self._require_owner("share reminders with the family")
        reminder = _build(
            Reminder,
            id=new_id("rem"),
            title=title.strip(),
            notes=notes.strip(),
            priority=priority,
            date=date,
            time=time,
            assigned_to=list(assigned_to or []),
            created_by=self.username,
            created_at=_now(),
        )

        def append(family: FamilyDocument) -> None:
            family.reminders.append(reminder)

        return await self.family.mutate(append)

    # --- Planner actions ---

    async def _mutate_planner(self, mutator) -> MutationResult[list[PlannerEntry]]:
        def apply(entries: list[PlannerEntry]) -> None:
            mutator(entries)
            assign_share_codes(entries)
            entries.sort(key=entry_order_key)

        return await self.planner.mutate(apply)

    async def add_entry(self, title: str, start_date: date | str, **fields) -> MutationResult[list[PlannerEntry]]:
        unknown = set(fields) - ENTRY_FIELDS
        if unknown:
            raise ValidationError(f"Unknown entry field(s): {', '.join(sorted(unknown))}")
        entry = _build(
            PlannerEntry,
            id=new_id("entry"),
            title=title.strip(),
            start_date=start_date,
            created_at=_now(),
            **fields,
        )

        def append(entries: list[PlannerEntry]) -> None:
            entries.append(entry)

        return await self._mutate_planner(append)

    async def update_entry(self, entry_id: str, **changes) -> MutationResult[list[PlannerEntry]]:
        unknown = set(changes) - ENTRY_FIELDS
        if unknown:
            raise ValidationError(f"Unknown entry field(s): {', '.join(sorted(unknown))}")

        def merged(entry: PlannerEntry) -> PlannerEntry:
            data = entry.model_dump()
            if changes.get("type") == "event" and "end_date" not in changes:
                data["end_date"] = None
            data.update(changes)
            return _build(PlannerEntry, **data)

        cached = next((e for e in self.entries if e.id == entry_id), None)
        if cached is not None:
            # Reject bad input before touching the server
            merged(cached)

        def replace(entries: list[PlannerEntry]) -> None:
            for i, entry in enumerate(entries):
                if entry.id == entry_id:
                    entries[i] = merged(entry)
                    return
            raise NotFound("That entry no longer exists")

        return await self._mutate_planner(replace)

    async def delete_entry(self, entry_id: str) -> MutationResult[list[PlannerEntry]]:
        def remove(entries: list[PlannerEntry]) -> None:
            entries[:] = [e for e in entries if e.id != entry_id]

        return await self._mutate_planner(remove)

    async def import_shared_entry(self, code: str) -> MutationResult[list[PlannerEntry]]:
        """Copy another planner's entry into ours by its share code."""
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Enter an entry code to import")
        _, shared = await self._client.get_shared_entry(normalized)
        clone = shared.model_copy(update={
            "id": new_id("entry"),
            "created_at": _now(),
            "share_code": None,
            "imported_from": normalized,
        })

        def append(entries: list[PlannerEntry]) -> None:
            if any(normalized in (e.share_code, e.imported_from) for e in entries):
                raise Conflict("This entry is already in your planner")
            entries.append(clone)

        return await self._mutate_planner(append)
