from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from app.config import Settings
from app.core.exceptions import (
    AuthenticationError,
    DeserializationError,
    DuplicateWorkflowIdError,
    TransportError,
)
from app.schemas.workflow import RemoteWorkflow, TokenResponse

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenCache:
    """Bearer token held by one client instance."""

    token: str | None = None
    expires_at: datetime | None = None

    def valid_token(self, now: datetime) -> str | None:
        if not self.token or self.expires_at is None:
            return None
        if now >= self.expires_at:
            return None
        return self.token

    def store(self, token: str, expires_in: int, margin_seconds: int, now: datetime) -> None:
        self.token = token
        self.expires_at = now + timedelta(seconds=expires_in - margin_seconds)

    def clear(self) -> None:
        self.token = None
        self.expires_at = None


class RemoteWorkflowClient:
    """Client for the remote workflow-execution API (Universal Loader)."""

    AUTH_PATH = "/v2/authenticate"
    WORKFLOWS_PATH = "/workflows"

    def __init__(
        self,
        base_url: str,
        company_id: str,
        user_id: str,
        user_secret: str,
        timeout: float = 30.0,
        refresh_margin_seconds: int = 300,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.base_url = base_url.rstrip("/")
        self.company_id = company_id
        self.user_id = user_id
        self._user_secret = user_secret
        self.timeout = timeout
        self.refresh_margin_seconds = refresh_margin_seconds
        self.token_cache = TokenCache()
        self._transport = transport
        self._clock = clock
        self._token_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RemoteWorkflowClient":
        return cls(
            base_url=settings.universal_loader_base_url,
            company_id=settings.universal_loader_company_id,
            user_id=settings.universal_loader_user_id,
            user_secret=settings.universal_loader_user_secret.get_secret_value(),
            timeout=settings.remote_timeout_seconds,
            refresh_margin_seconds=settings.token_refresh_margin_seconds,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    async def get_workflows(self) -> list[RemoteWorkflow]:
        """List workflows known to the remote authority."""
        token = await self.get_valid_token()
        try:
            async with self._client() as client:
                response = await client.get(self.WORKFLOWS_PATH, headers=self._headers(token))
        except httpx.HTTPError as exc:
            logger.error("Workflow list request failed: %s", exc)
            raise TransportError(f"Workflow list request failed: {exc}") from exc

        if response.status_code == 401:
            self.token_cache.clear()
        if not response.is_success:
            logger.error("Workflow list failed with status %s: %s", response.status_code, response.text)
            raise TransportError(f"Workflow list failed with status {response.status_code}")

        return self._parse_workflows(response)

    async def run_workflow(self, workflow_id: str) -> bool:
        """Ask the remote authority to execute a workflow. Returns False when it refuses."""
        token = await self.get_valid_token()
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.WORKFLOWS_PATH}/{workflow_id}/run",
                    headers=self._headers(token),
                )
        except httpx.HTTPError as exc:
            logger.error("Run request for workflow %s failed: %s", workflow_id, exc)
            raise TransportError(f"Run request for workflow {workflow_id} failed: {exc}") from exc

        if response.status_code == 401:
            self.token_cache.clear()
        if not response.is_success:
            logger.warning("Remote refused to run workflow %s: status %s", workflow_id, response.status_code)
            return False
        return True

    async def get_valid_token(self) -> str:
        cached = self.token_cache.valid_token(self._clock())
        if cached:
            logger.debug("Using cached access token")
            return cached

        async with self._token_lock:
            # Another caller may have refreshed while this one waited.
            cached = self.token_cache.valid_token(self._clock())
            if cached:
                return cached

            logger.info("No valid cached token found. Requesting new access token...")
            token_response = await self._request_new_token()
            self.token_cache.store(
                token_response.access_token or "",
                token_response.expires_in,
                self.refresh_margin_seconds,
                self._clock(),
            )
            logger.info(
                "Access token cached for %s seconds",
                token_response.expires_in - self.refresh_margin_seconds,
            )
            return token_response.access_token or ""

    async def _request_new_token(self) -> TokenResponse:
        payload = {
            "apiCompanyId": self.company_id,
            "apiUserId": self.user_id,
            "apiUserSecret": self._user_secret,
        }
        logger.info("Authenticating against %s%s", self.base_url, self.AUTH_PATH)
        try:
            async with self._client() as client:
                response = await client.post(self.AUTH_PATH, json=payload)
        except httpx.HTTPError as exc:
            logger.error("HTTP request exception during authentication: %s", exc)
            raise TransportError(f"HTTP request failed during authentication: {exc}") from exc

        if not response.is_success:
            logger.error(
                "Authentication failed with status %s. Response: %s",
                response.status_code,
                response.text,
            )
            raise AuthenticationError(f"Authentication failed with status {response.status_code}")

        try:
            token_response = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("Failed to parse authentication response: %s", response.text)
            raise DeserializationError(f"Failed to parse authentication response: {exc}") from exc

        if not token_response.access_token:
            logger.error("Access token is null or empty in authentication response")
            raise AuthenticationError("Access token is null or empty in authentication response")

        logger.info("Successfully obtained access token. Expires in %s seconds", token_response.expires_in)
        return token_response

    @staticmethod
    def _parse_workflows(response: httpx.Response) -> list[RemoteWorkflow]:
        try:
            body = response.json() if response.content else None
        except ValueError as exc:
            raise DeserializationError(f"Workflow list is not valid JSON: {exc}") from exc

        if body is None:
            return []
        if not isinstance(body, list):
            raise DeserializationError(f"Workflow list must be a JSON array, got {type(body).__name__}")

        try:
            workflows = [RemoteWorkflow.model_validate(item) for item in body]
        except ValidationError as exc:
            raise DeserializationError(f"Malformed workflow in remote list: {exc}") from exc

        seen: set[int] = set()
        duplicates: list[int] = []
        for workflow in workflows:
            if workflow.id in seen:
                duplicates.append(workflow.id)
            seen.add(workflow.id)
        if duplicates:
            raise DuplicateWorkflowIdError(duplicates)
        return workflows
