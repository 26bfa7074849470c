"""
auction_gateway

Backend gateway for the auction mini app.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
