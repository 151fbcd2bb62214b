"""
BIP-353 username publication through Cloudflare DNS.

A username `alice` under `example.com` becomes the TXT record
`alice.user._bitcoin-payment.example.com` holding `"bitcoin:?lno=<offer>"`.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from .config import Settings
from .exceptions import DnsRecordError
from .models import DnsRecord

logger = structlog.get_logger(__name__)

RECORD_TTL = 3600


def record_hostname(username: str) -> str:
    return f"{username.lower()}.user._bitcoin-payment"


def record_content(bolt12_offer: str) -> str:
    # TXT content is quoted per BIP-353
    return f'"bitcoin:?lno={bolt12_offer}"'


def simulate_dns_record(username: str, bolt12_offer: str, domain: str) -> DnsRecord:
    """Build the record that would be created, without calling Cloudflare."""
    return DnsRecord(
        id=f"simulated-record-{int(time.time() * 1000)}",
        name=f"{record_hostname(username)}.{domain}",
        type="TXT",
        content=record_content(bolt12_offer),
        ttl=RECORD_TTL,
        created_on=datetime.now(timezone.utc).isoformat(),
    )


class CloudflareDNS:
    """
    Minimal async Cloudflare DNS client.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.cloudflare_api_url,
            headers={
                "Authorization": f"Bearer {self.settings.cloudflare_api_token}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=self._transport,
        )

    async def create_txt_record(self, username: str, bolt12_offer: str) -> DnsRecord:
        """
        Create the username TXT record.

        Raises:
            DnsRecordError: Cloudflare unreachable or reported failure
        """
        domain = self.settings.domain
        payload = {
            "type": "TXT",
            "name": f"{record_hostname(username)}.{domain}",
            "content": record_content(bolt12_offer),
            "ttl": RECORD_TTL,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    f"/zones/{self.settings.cloudflare_zone_id}/dns_records",
                    json=payload,
                )
            data: Any = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Cloudflare request failed", error=str(e))
            raise DnsRecordError(f"Cloudflare request failed: {e}") from e

        if not isinstance(data, dict):
            logger.error("Cloudflare returned unexpected body", status=response.status_code)
            raise DnsRecordError("Unexpected response from Cloudflare")

        if not data.get("success"):
            errors = data.get("errors") or []
            first = errors[0] if isinstance(errors, list) and errors else None
            message = first.get("message") if isinstance(first, dict) else None
            logger.error("Cloudflare API error", errors=errors, status=response.status_code)
            raise DnsRecordError(message or "Failed to create DNS record", errors)

        try:
            result = data["result"]
            return DnsRecord(
                id=result["id"],
                name=result["name"],
                type=result["type"],
                content=result["content"],
                ttl=result["ttl"],
                created_on=result.get("created_on"),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.error("Cloudflare result incomplete", error=str(e), status=response.status_code)
            raise DnsRecordError(f"Unexpected response from Cloudflare: {e!r}") from e
