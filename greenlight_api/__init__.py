"""
Greenlight Offer API - HTTP facade over a Greenlight hosted Lightning node.

Provides REST endpoints for:
- Creating BOLT12 offers
- Publishing BIP-353 usernames for an offer
- Health checks
"""

__version__ = "0.1.0"
