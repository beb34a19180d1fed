"""
Send push notifications via the Expo push service (https://docs.expo.dev/push-notifications/sending-notifications/).

EXPO_ACCESS_TOKEN is only required when enhanced push security is enabled for the project.
Anything that can send a chunk of PushMessage and return one PushTicket per message satisfies
PushSender; tests pass a fake, main.py builds ExpoPushClient.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, Sequence

import httpx

from kreels.core.constants import EXPO_DEVICE_NOT_REGISTERED, EXPO_MAX_CHUNK_SIZE
from kreels.core.errors import PushProviderError

logger = logging.getLogger(__name__)

# Same acceptance rule as expo-server-sdk's Expo.isExpoPushToken
_EXPO_TOKEN_RE = re.compile(r"^Expo(nent)?PushToken\[.+\]$")
_BARE_TOKEN_RE = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)


def is_expo_push_token(token: Any) -> bool:
    """True if token looks like an Expo push token (ExponentPushToken[...] or a bare UUID-style id)."""
    if not isinstance(token, str):
        return False
    return bool(_EXPO_TOKEN_RE.match(token) or _BARE_TOKEN_RE.match(token))


@dataclass
class PushMessage:
    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str | None = "default"
    badge: int | None = None

    def to_json(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"to": self.to, "title": self.title, "body": self.body, "data": self.data}
        if self.sound is not None:
            msg["sound"] = self.sound
        if self.badge is not None:
            msg["badge"] = self.badge
        return msg


@dataclass
class PushTicket:
    """Per-message result. status is 'ok' or 'error'; error carries details.error (e.g. DeviceNotRegistered)."""

    status: str
    id: str | None = None
    message: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "PushTicket":
        details = raw.get("details") or {}
        return cls(
            status=raw.get("status", "error"),
            id=raw.get("id"),
            message=raw.get("message"),
            error=details.get("error") if isinstance(details, dict) else None,
        )


class PushSender(Protocol):
    """Push provider boundary: send one chunk, get one ticket per message (same order)."""

    async def send_chunk(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        ...


class ExpoPushClient:
    """PushSender backed by the Expo HTTP API. One httpx.AsyncClient for the process lifetime."""

    def __init__(
        self,
        push_url: str,
        access_token: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.push_url = push_url
        headers = {"accept": "application/json", "content-type": "application/json"}
        if access_token:
            headers["authorization"] = f"Bearer {access_token}"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    async def send_chunk(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        payload = [m.to_json() for m in messages]
        try:
            resp = await self._client.post(self.push_url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise PushProviderError(f"Expo request failed: {e}") from e
        if resp.status_code != 200:
            raise PushProviderError(
                f"Expo returned {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code
            )
        body = resp.json()
        if body.get("errors"):
            raise PushProviderError(f"Expo request errors: {body['errors']}")
        tickets = [PushTicket.from_json(t) for t in body.get("data") or []]
        if len(tickets) != len(messages):
            raise PushProviderError(f"Expo returned {len(tickets)} tickets for {len(messages)} messages")
        return tickets

    async def aclose(self) -> None:
        await self._client.aclose()


def chunk_messages(messages: Sequence[PushMessage], size: int = EXPO_MAX_CHUNK_SIZE) -> Iterator[list[PushMessage]]:
    """Split into provider-sized chunks (Expo accepts at most 100 per request)."""
    size = max(1, min(size, EXPO_MAX_CHUNK_SIZE))
    for start in range(0, len(messages), size):
        yield list(messages[start : start + size])


@dataclass
class PushResult:
    sent: int = 0
    failed: int = 0
    invalid_tokens: list[str] = field(default_factory=list)
    unregistered_tokens: list[str] = field(default_factory=list)


async def send_push_notifications(
    sender: PushSender,
    tokens: Sequence[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    badge: int | None = None,
    chunk_size: int = EXPO_MAX_CHUNK_SIZE,
) -> PushResult:
    """
    Send the same notification to every token. Never raises.
    Malformed tokens are dropped; a failing chunk is logged and the rest still go out.
    """
    result = PushResult()
    messages = []
    for token in tokens:
        if not is_expo_push_token(token):
            logger.error("Invalid Expo push token: %s", token)
            result.invalid_tokens.append(token)
            continue
        messages.append(PushMessage(to=token, title=title, body=body, data=dict(data or {}), badge=badge))
    if not messages:
        return result

    for chunk in chunk_messages(messages, chunk_size):
        try:
            tickets = await sender.send_chunk(chunk)
        except Exception as e:
            logger.error("Error sending push notifications (%s messages): %s", len(chunk), e, exc_info=True)
            result.failed += len(chunk)
            continue
        for msg, ticket in zip(chunk, tickets):
            if ticket.ok:
                result.sent += 1
                continue
            result.failed += 1
            logger.error("Push notification error for %s...: %s", msg.to[:30], ticket.message)
            if ticket.error:
                logger.error("Error details: %s", ticket.error)
            if ticket.error == EXPO_DEVICE_NOT_REGISTERED:
                result.unregistered_tokens.append(msg.to)
    return result
