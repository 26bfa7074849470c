"""
auction_gateway.db

External store lifecycle (PostgreSQL pool + Redis handle).

Responsibilities:
- Build the relational pool and warm it up with retries.
- Hand out a single shared Redis client with single-flight connects.
- Own teardown of both resources.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing outside `db.supervisor` opens or closes these resources.
