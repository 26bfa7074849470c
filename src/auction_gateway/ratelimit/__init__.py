"""
auction_gateway.ratelimit

Per-client-address admission control.

Responsibilities:
- Fixed-window counters (`limiter`).
- The four named tiers and their controller (`policies`).
- FastAPI dependency factory (`deps`).
"""

# Package marker.
