"""Family registry: family documents, invite codes, roster mutation.

Every write is a whole-document replace performed under a per-family
in-process lock. Concurrent `replace_family` calls from different clients
resolve last-write-wins; the registry only protects the fields it owns
(id, code, owner, timestamps) and the roster invariants.
"""

import logging
import threading
from datetime import datetime, timezone

from familyhub.errors import NotFound, ValidationError
from familyhub.schemas.family import FamilyDocument, Member
from familyhub.schemas.user import UserRecord
from familyhub.services.directory_service import DirectoryService
from familyhub.store import FAMILIES, DocumentStore
from familyhub.utils.locks import KeyedLock
from familyhub.utils.security import generate_code, new_id

logger = logging.getLogger(__name__)

JOIN_ROLES = ("adult", "kid")


class FamilyRegistry:
    def __init__(self, store: DocumentStore, directory: DirectoryService):
        self._store = store
        self._directory = directory
        self._locks = KeyedLock()
        # Serializes code issuance so two families never draw the same code
        self._code_lock = threading.Lock()

    # --- Reads ---

    def list_families(self, member: str | None = None) -> list[FamilyDocument]:
        families = [FamilyDocument.model_validate(doc) for doc in self._store.list(FAMILIES)]
        if member:
            families = [f for f in families if f.member(member) is not None]
        return families

    def get_family(self, family_id: str) -> FamilyDocument:
        doc = self._store.get(FAMILIES, family_id)
        if doc is None:
            raise NotFound("Family not found")
        return FamilyDocument.model_validate(doc)

    def find_by_code(self, code: str) -> FamilyDocument | None:
        """Exact-match lookup of an invite code."""
        for doc in self._store.list(FAMILIES):
            if doc.get("code") == code:
                return FamilyDocument.model_validate(doc)
        return None

    def get_by_code(self, code: str) -> FamilyDocument:
        family = self.find_by_code(code)
        if family is None:
            raise NotFound("Couldn't find that family code")
        return family

    def _issued_codes(self) -> set[str]:
        return {doc.get("code") for doc in self._store.list(FAMILIES)}

    def _save(self, family: FamilyDocument) -> FamilyDocument:
        stored = self._store.put(FAMILIES, family.id, family.model_dump(mode="json"))
        return FamilyDocument.model_validate(stored)

    # --- Mutations ---

    def create_family(self, name: str, owner: str) -> FamilyDocument:
        """Create a family owned by `owner` and point the owner's record at it."""
        self._directory.get_user(owner)

        with self._code_lock:
            family = FamilyDocument(
                id=new_id("fam"),
                name=name,
                code=generate_code(self._issued_codes()),
                owner=owner,
                created_at=datetime.now(timezone.utc),
                members=[Member(username=owner, role="owner")],
            )
            family = self._save(family)

        self._directory.update_user(owner, {"family_id": family.id, "role": "owner"})
        logger.info("Family created: %s (%s) owner=%s", family.id, family.name, owner)
        return family

    def join_by_code(self, username: str, code: str, role: str = "adult") -> tuple[FamilyDocument, UserRecord]:
        """Add `username` to the family holding `code`. Idempotent per username."""
        if role not in JOIN_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(JOIN_ROLES)}")
        self._directory.get_user(username)
        found = self.get_by_code(code)

        with self._locks.hold(found.id):
            family = self.get_family(found.id)
            if family.code != code:
                # Regenerated between lookup and lock
                raise NotFound("Couldn't find that family code")

            member = family.member(username)
            if member is None:
                member = Member(username=username, role=role)
                family.members.append(member)
                family = self._save(family)
                logger.info("User %s joined family %s as %s", username, family.id, role)

        user = self._directory.update_user(username, {"family_id": family.id, "role": member.role})
        return family, user

    def regenerate_code(self, family_id: str) -> FamilyDocument:
        """Issue a fresh code. The previous code stops resolving immediately."""
        with self._code_lock, self._locks.hold(family_id):
            family = self.get_family(family_id)
            old_code = family.code
            family.code = generate_code(self._issued_codes())
            family.regenerated_at = datetime.now(timezone.utc)
            family = self._save(family)

        logger.info("Family %s invite code regenerated (was %s)", family_id, old_code)
        return family

    def replace_family(self, document: FamilyDocument) -> FamilyDocument:
        """Whole-document overwrite. Registry-owned fields keep their stored values."""
        with self._locks.hold(document.id):
            current = self.get_family(document.id)
            family = document.model_copy(
                update={
                    "code": current.code,
                    "owner": current.owner,
                    "created_at": current.created_at,
                    "regenerated_at": current.regenerated_at,
                },
                deep=True,
            )
            self._check_roster(family)
            family = self._save(family)

        logger.debug(
            "Family %s replaced: %d members, %d reminders, %d messages",
            family.id, len(family.members), len(family.reminders), len(family.chat),
        )
        return family

    def update_member_role(self, family_id: str, username: str, role: str) -> tuple[FamilyDocument, UserRecord]:
        if role not in JOIN_ROLES:
            raise ValidationError("Ownership cannot be granted through a role change")

        with self._locks.hold(family_id):
            family = self.get_family(family_id)
            member = family.member(username)
            if member is None:
                raise NotFound("Member not found")
            if member.role == "owner":
                raise ValidationError("The family owner's role cannot be changed")
            member.role = role
            family = self._save(family)

        user = self._directory.update_user(username, {"role": role})
        logger.info("Family %s: %s is now %s", family_id, username, role)
        return family, user

    def leave_family(self, family_id: str, username: str) -> tuple[FamilyDocument, UserRecord]:
        with self._locks.hold(family_id):
            family = self.get_family(family_id)
            member = family.member(username)
            if member is None:
                raise NotFound("Member not found")
            if member.role == "owner":
                raise ValidationError("The family owner cannot leave the family")
            family.members = [m for m in family.members if m.username != username]
            family = self._save(family)

        user = self._directory.update_user(username, {"family_id": None, "role": "solo"})
        logger.info("User %s left family %s", username, family_id)
        return family, user

    @staticmethod
    def _check_roster(family: FamilyDocument) -> None:
        owners = [m.username for m in family.members if m.role == "owner"]
        if owners != [family.owner]:
            raise ValidationError("A family must have exactly one owner, its creator")
