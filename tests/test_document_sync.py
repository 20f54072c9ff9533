"""DocumentSync pull/mutate/push cycle against an in-process fake remote."""

import asyncio
import copy

import pytest

from familyhub.errors import Conflict, UpstreamUnavailable
from familyhub.sync.document import DISCARDED_MESSAGE, NOT_SYNCED_MESSAGE, DocumentSync, SyncState


class FakeRemote:
    def __init__(self, doc):
        self.doc = doc
        self.fetch_error = None
        self.push_error = None
        self.pushes = 0

    async def fetch(self):
        if self.fetch_error:
            raise self.fetch_error
        return copy.deepcopy(self.doc)

    async def push(self, doc):
        if self.push_error:
            raise self.push_error
        self.pushes += 1
        self.doc = copy.deepcopy(doc)
        return copy.deepcopy(self.doc)


def _sync(remote, changes=None):
    def on_change(name, doc):
        if changes is not None:
            changes.append((name, list(doc) if doc is not None else None))

    return DocumentSync(
        "notes",
        fetch=remote.fetch,
        push=remote.push,
        signature=lambda doc: None if doc is None else "|".join(doc),
        on_change=on_change,
    )


def test_hydrate_and_pull():
    async def scenario():
        remote = FakeRemote(["a"])
        changes = []
        sync = _sync(remote, changes)
        assert sync.state == SyncState.COLD

        await sync.hydrate()
        assert sync.state == SyncState.LIVE
        assert sync.cache == ["a"]

        assert await sync.pull() is False
        remote.doc = ["a", "b"]
        assert await sync.pull() is True
        assert sync.cache == ["a", "b"]
        assert changes == [("notes", ["a"]), ("notes", ["a", "b"])]

    asyncio.run(scenario())


def test_hydrate_failure_stays_cold():
    async def scenario():
        remote = FakeRemote(["a"])
        remote.fetch_error = UpstreamUnavailable("down")
        sync = _sync(remote)
        with pytest.raises(UpstreamUnavailable):
            await sync.hydrate()
        assert sync.state == SyncState.COLD
        assert sync.cache is None

    asyncio.run(scenario())


def test_failed_pull_keeps_cache():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.doc = ["changed"]
        remote.fetch_error = UpstreamUnavailable("down")
        assert await sync.pull() is False
        assert sync.cache == ["a"]
        with pytest.raises(UpstreamUnavailable):
            await sync.pull(silent=False)

    asyncio.run(scenario())


def test_mutate_builds_on_fresh_remote():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.doc = ["a", "from-other-device"]
        result = await sync.mutate(lambda doc: doc.append("mine"))
        assert result.synced
        assert result.document == ["a", "from-other-device", "mine"]
        assert sync.cache == remote.doc
        assert sync.state == SyncState.LIVE

    asyncio.run(scenario())


def test_retryable_push_failure_keeps_edit_pending():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.push_error = UpstreamUnavailable("down")
        result = await sync.mutate(lambda doc: doc.append("b"))
        assert not result.synced
        assert result.message == NOT_SYNCED_MESSAGE
        assert sync.cache == ["a", "b"]
        assert sync.has_pending

        # Remote moved on while we were offline: the local edit is kept
        remote.doc = ["a", "x"]
        assert await sync.pull() is False
        assert sync.cache == ["a", "b"]

        remote.push_error = None
        result = await sync.retry()
        assert result.synced
        assert remote.doc == ["a", "x", "b"]
        assert not sync.has_pending
        assert await sync.retry() is None

    asyncio.run(scenario())


def test_pending_edits_replay_in_order():
    async def scenario():
        remote = FakeRemote([])
        sync = _sync(remote)
        await sync.hydrate()

        remote.push_error = UpstreamUnavailable("down")
        await sync.mutate(lambda doc: doc.append("1"))
        await sync.mutate(lambda doc: doc.append("2"))
        assert sync.cache == ["1", "2"]

        remote.push_error = None
        result = await sync.mutate(lambda doc: doc.append("3"))
        assert result.synced
        assert remote.doc == ["1", "2", "3"]
        assert remote.pushes == 1

    asyncio.run(scenario())


def test_offline_mutation_applies_to_cache():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.fetch_error = UpstreamUnavailable("down")
        result = await sync.mutate(lambda doc: doc.append("b"))
        assert not result.synced
        assert sync.cache == ["a", "b"]
        assert remote.doc == ["a"]

        remote.fetch_error = None
        await sync.retry()
        assert remote.doc == ["a", "b"]

    asyncio.run(scenario())


def test_terminal_push_failure_restores_cache():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()
        before = sync.signature

        remote.push_error = Conflict("rejected")
        with pytest.raises(Conflict):
            await sync.mutate(lambda doc: doc.append("b"))
        assert sync.cache == ["a"]
        assert sync.signature == before
        assert not sync.has_pending
        assert sync.state == SyncState.LIVE

    asyncio.run(scenario())


def test_pull_waits_for_inflight_mutation():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        gate = asyncio.Event()
        original_push = remote.push

        async def slow_push(doc):
            await gate.wait()
            return await original_push(doc)

        sync._push = slow_push
        mutation = asyncio.create_task(sync.mutate(lambda doc: doc.append("b")))
        await asyncio.sleep(0)
        assert sync.busy

        pull = asyncio.create_task(sync.pull())
        await asyncio.sleep(0)
        assert not pull.done()

        gate.set()
        await mutation
        assert await pull is False
        assert sync.cache == ["a", "b"]

    asyncio.run(scenario())


def test_accept_replays_pending_edits():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.push_error = UpstreamUnavailable("down")
        await sync.mutate(lambda doc: doc.append("mine"))
        remote.push_error = None

        # Another path (a targeted server action) changed the document
        remote.doc = ["a", "server"]
        result = await sync.accept(["a", "server"], replay=True)
        assert result.synced
        assert remote.doc == ["a", "server", "mine"]
        assert sync.cache == remote.doc
        assert not sync.has_pending

        assert await sync.accept(["a", "server", "mine"], replay=True) is None

    asyncio.run(scenario())


def test_accept_without_replay_reports_discarded_edits():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.push_error = UpstreamUnavailable("down")
        await sync.mutate(lambda doc: doc.append("mine"))

        result = await sync.accept(None)
        assert not result.synced
        assert result.message == DISCARDED_MESSAGE
        assert sync.cache is None
        assert sync.state == SyncState.COLD
        assert not sync.has_pending

    asyncio.run(scenario())


def test_accept_replay_rejected_by_server():
    async def scenario():
        remote = FakeRemote(["a"])
        sync = _sync(remote)
        await sync.hydrate()

        remote.push_error = UpstreamUnavailable("down")
        await sync.mutate(lambda doc: doc.append("mine"))

        remote.push_error = Conflict("rejected")
        result = await sync.accept(["a", "b"], replay=True)
        assert result.message == DISCARDED_MESSAGE
        assert sync.cache == ["a", "b"]
        assert not sync.has_pending
        assert sync.state == SyncState.LIVE

    asyncio.run(scenario())
