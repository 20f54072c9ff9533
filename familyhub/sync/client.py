"""Async HTTP client for the FamilyHub API.

Every non-2xx answer is raised as the matching `familyhub.errors` type;
transport failures become `UpstreamUnavailable`.
"""

import logging
from urllib.parse import quote

import httpx

from familyhub.config import settings
from familyhub.errors import UpstreamUnavailable, error_from_response
from familyhub.schemas.family import FamilyDocument
from familyhub.schemas.planner import PlannerEntry
from familyhub.schemas.user import UserResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _seg(value: str) -> str:
    return quote(value, safe="")


class FamilyHubClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout or settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "FamilyHubClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._http.request(method, API_PREFIX + path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            raise error_from_response(response.status_code, body if isinstance(body, dict) else None)
        return response.json()

    # --- Directory ---

    async def get_user(self, username: str) -> UserResponse:
        data = await self._request("GET", f"/users/{_seg(username)}")
        return UserResponse.model_validate(data["user"])

    async def create_user(self, username: str, email: str, password: str, role: str = "solo") -> UserResponse:
        data = await self._request(
            "POST", "/users",
            json={"username": username, "email": email, "password": password, "role": role},
        )
        return UserResponse.model_validate(data["user"])

    async def login(
        self,
        username: str,
        password: str,
        device_id: str | None = None,
        device_label: str | None = None,
    ) -> UserResponse:
        data = await self._request(
            "POST", "/users/login",
            json={
                "username": username,
                "password": password,
                "device_id": device_id,
                "device_label": device_label,
            },
        )
        return UserResponse.model_validate(data["user"])

    async def update_user(self, username: str, updates: dict) -> UserResponse:
        data = await self._request("PUT", f"/users/{_seg(username)}", json={"updates": updates})
        return UserResponse.model_validate(data["user"])

    # --- Families ---

    async def get_family(self, family_id: str) -> FamilyDocument:
        data = await self._request("GET", f"/families/{_seg(family_id)}")
        return FamilyDocument.model_validate(data["family"])

    async def get_family_by_code(self, code: str) -> FamilyDocument:
        data = await self._request("GET", f"/families/by-code/{_seg(code)}")
        return FamilyDocument.model_validate(data["family"])

    async def list_families(self, member: str | None = None) -> list[FamilyDocument]:
        params = {"member": member} if member else None
        data = await self._request("GET", "/families", params=params)
        return [FamilyDocument.model_validate(f) for f in data["families"]]

    async def create_family(self, name: str, owner: str) -> FamilyDocument:
        data = await self._request("POST", "/families", json={"name": name, "owner": owner})
        return FamilyDocument.model_validate(data["family"])

    async def replace_family(self, family: FamilyDocument) -> FamilyDocument:
        data = await self._request(
            "PUT", f"/families/{_seg(family.id)}",
            json={"family": family.model_dump(mode="json")},
        )
        return FamilyDocument.model_validate(data["family"])

    async def _family_action(self, payload: dict) -> tuple[FamilyDocument, UserResponse | None]:
        data = await self._request("PATCH", "/families", json=payload)
        user = data.get("user")
        return (
            FamilyDocument.model_validate(data["family"]),
            UserResponse.model_validate(user) if user else None,
        )

    async def join_family(self, username: str, code: str, role: str = "adult") -> tuple[FamilyDocument, UserResponse]:
        return await self._family_action({"action": "join", "username": username, "code": code, "role": role})

    async def regenerate_code(self, family_id: str) -> FamilyDocument:
        family, _ = await self._family_action({"action": "regenerate", "family_id": family_id})
        return family

    async def update_member_role(self, family_id: str, username: str, role: str) -> tuple[FamilyDocument, UserResponse]:
        return await self._family_action({
            "action": "updateMemberRole",
            "family_id": family_id,
            "username": username,
            "role": role,
        })

    async def leave_family(self, family_id: str, username: str) -> tuple[FamilyDocument, UserResponse]:
        return await self._family_action({"action": "leave", "family_id": family_id, "username": username})

    # --- Planner ---

    async def get_planner(self, username: str) -> list[PlannerEntry]:
        data = await self._request("GET", f"/planner/{_seg(username)}")
        return [PlannerEntry.model_validate(e) for e in data["entries"]]

    async def replace_planner(self, username: str, entries: list[PlannerEntry]) -> list[PlannerEntry]:
        data = await self._request(
            "PUT", f"/planner/{_seg(username)}",
            json={"entries": [e.model_dump(mode="json") for e in entries]},
        )
        return [PlannerEntry.model_validate(e) for e in data["entries"]]

    async def get_shared_entry(self, code: str) -> tuple[str, PlannerEntry]:
        data = await self._request("GET", f"/planner/share/{_seg(code)}")
        return data["owner"], PlannerEntry.model_validate(data["entry"])
