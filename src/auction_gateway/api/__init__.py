"""
auction_gateway.api

API package: app factory, entrypoint, routers and dependency wiring.
"""

# Package marker.
