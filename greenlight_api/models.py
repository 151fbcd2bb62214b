"""
Pydantic models for API requests and responses.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Envelope
# ============================================================================

class ApiResponse(BaseModel):
    """Uniform response envelope for every endpoint and error path."""

    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field("", description="Human-readable outcome")
    data: Optional[Any] = Field(None, description="Endpoint payload, null on failure")


# ============================================================================
# Create Offer
# ============================================================================

class OfferData(BaseModel):
    """Payload of a successful /api/create-offer."""

    offer: str = Field(..., description="BOLT12 offer (lno1...)")


# ============================================================================
# Create Username
# ============================================================================

class CreateUsernameRequest(BaseModel):
    """Request to publish a BIP-353 username for a BOLT12 offer."""

    username: Optional[str] = Field(None, description="Username (local part)")
    bolt12_offer: Optional[str] = Field(None, alias="bolt12Offer", description="BOLT12 offer")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "username": "satoshi",
                    "bolt12Offer": "lno1qgsqvgnwgcg35z6ee2h3yczraddm72xrfua9uve2rlrm9deu7xyfzrc...",
                }
            ]
        },
    }


class DnsRecord(BaseModel):
    """DNS record as created (or simulated) on Cloudflare."""

    id: str
    name: str
    type: str
    content: str
    ttl: int
    created_on: Optional[str] = None


class UsernameData(BaseModel):
    """Payload of a successful /create-username."""

    username: str = Field(..., description="user@domain")
    bitcoin_address: str = Field(..., alias="bitcoinAddress", description="DNS name of the TXT record")
    dns_record: DnsRecord = Field(..., alias="dnsRecord")

    model_config = {"populate_by_name": True}


# ============================================================================
# Health Check
# ============================================================================

class HealthConfig(BaseModel):
    certificates_loaded: bool = Field(..., description="Developer credentials resolvable")
    network: str = Field(..., description="Greenlight network")
    seed_policy: str = Field(..., description="Signing seed lifecycle")
    cloudflare_configured: bool = Field(..., description="Cloudflare token and zone set")


class HealthData(BaseModel):
    """Health check payload."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: int = Field(..., description="Server time (unix seconds)")
    config: HealthConfig
