"""User directory: account records, credential check, profile fields."""

import logging
from datetime import datetime, timezone

from pydantic import ValidationError as SchemaError

from familyhub.errors import Conflict, NotFound, Unauthorized, from_schema_error
from familyhub.schemas.user import UserCreateRequest, UserRecord, UserUpdate
from familyhub.store import PLANNERS, USERS, DocumentStore
from familyhub.utils.locks import KeyedLock
from familyhub.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

# Fields that may be cleared by sending null
NULLABLE_FIELDS = {"family_id", "last_login", "last_device_id", "last_device_label"}


class DirectoryService:
    def __init__(self, store: DocumentStore):
        self._store = store
        self._locks = KeyedLock()

    def list_users(self) -> list[UserRecord]:
        return [UserRecord.model_validate(doc) for doc in self._store.list(USERS)]

    def find_by_username(self, username: str) -> UserRecord | None:
        doc = self._store.get(USERS, username)
        return UserRecord.model_validate(doc) if doc else None

    def find_by_email(self, email: str) -> UserRecord | None:
        """First account registered with this email (several may share one)."""
        email = email.strip()
        matches = [u for u in self.list_users() if u.email == email]
        if not matches:
            return None
        return min(matches, key=lambda u: u.created_at)

    def get_user(self, username: str) -> UserRecord:
        user = self.find_by_username(username)
        if user is None:
            raise NotFound("User not found")
        return user

    def create_user(self, request: UserCreateRequest) -> UserRecord:
        with self._locks.hold(request.username):
            if self._store.get(USERS, request.username) is not None:
                raise Conflict("Username already exists")

            user = UserRecord(
                username=request.username,
                email=request.email,
                password=hash_password(request.password),
                role=request.role,
                created_at=datetime.now(timezone.utc),
            )
            self._store.put(USERS, user.username, user.model_dump(mode="json"))
            if self._store.get(PLANNERS, user.username) is None:
                self._store.put(PLANNERS, user.username, {"entries": []})

        logger.info("User created: %s", user.username)
        return user

    def update_user(self, username: str, updates: dict) -> UserRecord:
        """Apply allow-listed fields; unknown keys are dropped."""
        try:
            parsed = UserUpdate.model_validate(updates)
        except SchemaError as e:
            raise from_schema_error(e) from e

        fields = {
            k: v for k, v in parsed.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_FIELDS
        }
        if "password" in fields:
            fields["password"] = hash_password(fields["password"])

        with self._locks.hold(username):
            user = self.get_user(username)
            data = user.model_dump()
            data.update(fields)
            try:
                updated = UserRecord.model_validate(data)
            except SchemaError as e:
                raise from_schema_error(e) from e
            self._store.put(USERS, username, updated.model_dump(mode="json"))
        return updated

    def login(
        self,
        username: str,
        password: str,
        device_id: str | None = None,
        device_label: str | None = None,
    ) -> UserRecord:
        user = self.find_by_username(username)
        if user is None or not verify_password(password, user.password):
            logger.info("Failed login for %s", username)
            raise Unauthorized("Invalid credentials")

        fields = {"last_login": datetime.now(timezone.utc)}
        if device_id:
            fields["last_device_id"] = device_id
        if device_label:
            fields["last_device_label"] = device_label
        return self.update_user(username, fields)
