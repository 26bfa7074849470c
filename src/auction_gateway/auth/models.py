"""
auction_gateway.auth.models

Auth domain models.

Responsibilities:
- Define the verified identity type (`Principal`) injected into endpoints.
- Define the client-declared, unverified identity (`DeclaredIdentity`).
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import unquote

from starlette.datastructures import Headers

FID_HEADER = "x-farcaster-fid"
USERNAME_HEADER = "x-farcaster-username"
PFP_HEADER = "x-farcaster-pfp"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Verified caller identity (Farcaster id from the token subject).
    """

    id: int


@dataclass(frozen=True, slots=True)
class DeclaredIdentity:
    """
    Identity the client claims about itself via x-farcaster-* headers.
    Display only: never use it for authorization, use `Principal` instead.
    """

    fid: int | None = None
    username: str | None = None
    pfp: str | None = None

    @classmethod
    def from_headers(cls, headers: Headers) -> DeclaredIdentity:
        return cls(
            fid=_parse_fid(headers.get(FID_HEADER)),
            username=_decode(headers.get(USERNAME_HEADER)),
            pfp=_decode(headers.get(PFP_HEADER)),
        )


def _parse_fid(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        fid = int(raw.strip(), 10)
    except ValueError:
        return None
    return fid if fid >= 0 else None


def _decode(raw: str | None) -> str | None:
    # Front-end sends these through encodeURIComponent (emoji in names, query strings in URLs).
    if raw is None:
        return None
    try:
        value = unquote(raw, errors="strict").strip()
    except UnicodeDecodeError:
        return None
    return value or None


# --- Module Notes -----------------------------------------------------------
# Keep these models minimal; they are used across API and auth dependencies.
