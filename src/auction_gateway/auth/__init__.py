"""
auction_gateway.auth

Authentication/authorization package.

Responsibilities:
- Farcaster Quick Auth token verification.
- Admin allow-list gate.
- FastAPI auth dependencies (Principal + admin check).
"""

# Package marker.
