"""Twitch token validation for privileged endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import httpx
from fastapi import Request

from ..core import (
    TWITCH_BROADCASTER_LOGIN,
    TWITCH_VALIDATE_URL,
    AuthenticationError,
    ConfigurationError,
    ForbiddenError,
    UpstreamError,
)


@dataclass(frozen=True)
class TwitchUser:
    user_id: str
    login: str
    client_id: str = ""
    scopes: List[str] = field(default_factory=list)


def get_auth_token(request: Request) -> str:
    """Accept ``Authorization: Bearer <token>`` or ``Authorization: OAuth <token>``."""

    header = request.headers.get("authorization") or ""
    for prefix in ("Bearer ", "OAuth "):
        if header.startswith(prefix):
            return header[len(prefix) :].strip()
    return ""


async def validate_twitch_token(token: str) -> TwitchUser:
    async with httpx.AsyncClient(timeout=10) as client:
        try:
            response = await client.get(
                TWITCH_VALIDATE_URL, headers={"Authorization": f"OAuth {token}"}
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(details=str(exc)) from exc

    if response.status_code == 401:
        raise AuthenticationError("Twitch rejected the access token.", error="invalid_token")
    if response.is_error:
        raise UpstreamError(details=f"status {response.status_code}")

    data = response.json()
    user_id = str(data.get("user_id") or "").strip()
    if not user_id:
        raise UpstreamError(details="validate response missing user_id")
    return TwitchUser(
        user_id=user_id,
        login=str(data.get("login") or "").strip().lower(),
        client_id=str(data.get("client_id") or ""),
        scopes=list(data.get("scopes") or []),
    )


async def require_streamer(request: Request) -> TwitchUser:
    """FastAPI dependency: the caller must be the configured broadcaster."""

    if not TWITCH_BROADCASTER_LOGIN:
        raise ConfigurationError("Missing TWITCH_BROADCASTER_LOGIN.")

    token = get_auth_token(request)
    if not token:
        raise AuthenticationError()

    user = await validate_twitch_token(token)
    if user.login != TWITCH_BROADCASTER_LOGIN:
        raise ForbiddenError("Only the broadcaster can submit competition results.")
    return user


__all__ = ["TwitchUser", "get_auth_token", "require_streamer", "validate_twitch_token"]
