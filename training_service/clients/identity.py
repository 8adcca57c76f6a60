"""HTTP client for the user identity service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    """The identity service reported that the user does not exist."""

    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class IdentityServiceUnavailableError(Exception):
    """The identity service could not be reached or did not answer in time."""

    code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str = "User service unavailable") -> None:
        super().__init__(message)


def _unwrap(body: Any) -> Any:
    """Strip the ``{"success": ..., "data": ...}`` envelope used by the user service."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class IdentityServiceClient:
    """Single-attempt, timeout-bounded reads against the identity service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def get_user(self, user_id: str, token: str) -> dict[str, Any]:
        """Return the user record for ``user_id``; it always carries a ``role``.

        Parameters
        ----------
        user_id:
            Identity reference of the user to look up.
        token:
            Raw bearer credential of the caller, forwarded unchanged.

        Raises
        ------
        UserNotFoundError
            When the identity service answers 404.
        IdentityServiceUnavailableError
            When the connection is refused or the call times out.
        httpx.HTTPError
            Any other failure is propagated as raised.
        """
        try:
            response = self._client.get(f"/api/users/{user_id}", headers=self._auth(token))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise UserNotFoundError(user_id) from exc
            logger.error("error validating user %s: %s", user_id, exc)
            raise
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise IdentityServiceUnavailableError() from exc
        except httpx.HTTPError as exc:
            logger.error("error validating user %s: %s", user_id, exc)
            raise
        return _unwrap(response.json())

    def fetch_users_batch(self, user_ids: list[str], token: str) -> list[dict[str, Any]]:
        """Look up several users at once, degrading to an empty list on failure."""
        try:
            response = self._client.post(
                "/api/users/batch", json={"user_ids": user_ids}, headers=self._auth(token)
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("error fetching users batch: %s", exc)
            return []
        return _unwrap(response.json()) or []

    def get_user_role_info(self, user_id: str, token: str) -> dict[str, Any] | None:
        try:
            response = self._client.get(f"/api/users/{user_id}/role-info", headers=self._auth(token))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("error fetching role info for %s: %s", user_id, exc)
            return None
        return _unwrap(response.json())
