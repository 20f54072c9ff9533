"""Client-side synchronization of family and planner documents."""

from familyhub.sync.client import FamilyHubClient
from familyhub.sync.document import DocumentSync, MutationResult, SyncState
from familyhub.sync.feed import ChangeFeed, PollingFeed
from familyhub.sync.signature import family_signature, ordered_chat, planner_signature
from familyhub.sync.synchronizer import ClientSynchronizer

__all__ = [
    "ChangeFeed",
    "ClientSynchronizer",
    "DocumentSync",
    "FamilyHubClient",
    "MutationResult",
    "PollingFeed",
    "SyncState",
    "family_signature",
    "ordered_chat",
    "planner_signature",
]
