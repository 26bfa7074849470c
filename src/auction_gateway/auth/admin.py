"""
auction_gateway.auth.admin

Authorization Gate: admin allow-list check.

Responsibilities:
- Parse the comma-separated ADMINS setting into an ordered tuple of fids.
- Decide whether a verified principal may perform admin actions.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import TYPE_CHECKING

from auction_gateway.errors import ConfigurationError, Forbidden
from auction_gateway.observability.logging import get_logger

if TYPE_CHECKING:
    from auction_gateway.auth.models import Principal

log = get_logger(__name__)


def parse_admin_list(raw: str | None) -> tuple[int, ...]:
    """
    "1768, 42,,1768" -> (1768, 42). Raises ValueError on non-integer entries.
    """

    if not raw:
        return ()
    fids: dict[int, None] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            fids[int(part, 10)] = None
        except ValueError as e:
            raise ValueError(f"ADMINS entry {part!r} is not an integer fid") from e
    return tuple(fids)


def require_admin(principal: Principal | None, allow_list: Collection[int]) -> None:
    # Empty list is a server misconfiguration and wins over everything else.
    if not allow_list:
        log.error("admin_allow_list_missing")
        raise ConfigurationError("ADMINS is empty or unset")

    fid = principal.id if principal is not None else None
    if fid is None or fid not in allow_list:
        log.warning("admin_access_denied", fid=fid)
        raise Forbidden(f"fid {fid} is not an admin")

    log.debug("admin_access_granted", fid=fid)
