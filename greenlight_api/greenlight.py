"""
Greenlight client adapter.

Thin wrapper over the `glclient` SDK so the orchestrator only sees
scheduler/signer/node handles and a plain OfferRequest. Tests substitute
a fake implementation of NodeHostingClient.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Optional

from .credentials import CredentialPair

OFFER_METHOD = "/cln.Node/Offer"


@dataclass(frozen=True)
class OfferRequest:
    """Parameters for a CLN `offer` call."""

    amount: str = "any"
    description: str = ""
    issuer: Optional[str] = ""
    label: Optional[str] = ""
    quantity_max: Optional[int] = 0
    absolute_expiry: Optional[int] = None
    recurrence: Optional[str] = None
    recurrence_base: Optional[bool] = None
    recurrence_paywindow: Optional[str] = None
    recurrence_limit: Optional[int] = None
    single_use: Optional[bool] = None

    def to_fields(self) -> dict[str, Any]:
        """Set fields only; unset optionals stay absent on the wire."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Registration:
    """Outcome of registering (or recovering) a node with the scheduler."""

    device_creds: bytes
    recovered: bool = False


class NodeHostingClient(ABC):
    """Abstract base for the operations the offer handshake needs from a node-hosting SDK."""

    @abstractmethod
    def scheduler(self, network: str, creds: CredentialPair) -> Any:
        """Open a scheduler session authenticated with developer credentials."""

    @abstractmethod
    def signer(self, seed: bytes, network: str, creds: CredentialPair) -> Any:
        """Build a signer bound to the seed, network and developer credentials."""

    @abstractmethod
    def register(self, scheduler: Any, signer: Any, invite_code: Optional[str] = None) -> Registration:
        """Register the signer's node and return its device credentials."""

    @abstractmethod
    def recover(self, scheduler: Any, signer: Any) -> Registration:
        """Recover device credentials for a node registered earlier."""

    @abstractmethod
    def authenticate(self, scheduler: Any, device_creds: bytes) -> Any:
        """Return a scheduler session authenticated as the node's device."""

    @abstractmethod
    def node(self, scheduler: Any) -> Any:
        """Return a client handle for the running node."""

    @abstractmethod
    def offer(self, node: Any, request: OfferRequest) -> str:
        """Create an offer on the node and return its bolt12 encoding."""


class GlClient(NodeHostingClient):
    """
    NodeHostingClient backed by Blockstream's `gl-client` package.

    All calls block on network I/O; run them off the event loop.
    """

    def _developer_creds(self, creds: CredentialPair) -> Any:
        from glclient import Credentials

        return Credentials.nobody_with(creds.cert, creds.key)

    def scheduler(self, network: str, creds: CredentialPair) -> Any:
        from glclient import Scheduler

        return Scheduler(network=network, creds=self._developer_creds(creds))

    def signer(self, seed: bytes, network: str, creds: CredentialPair) -> Any:
        from glclient import Signer

        return Signer(seed, network=network, creds=self._developer_creds(creds))

    def register(self, scheduler: Any, signer: Any, invite_code: Optional[str] = None) -> Registration:
        res = scheduler.register(signer, invite_code=invite_code)
        return Registration(device_creds=bytes(res.creds))

    def recover(self, scheduler: Any, signer: Any) -> Registration:
        res = scheduler.recover(signer)
        return Registration(device_creds=bytes(res.creds), recovered=True)

    def authenticate(self, scheduler: Any, device_creds: bytes) -> Any:
        from glclient import Credentials

        return scheduler.authenticate(Credentials.from_bytes(device_creds))

    def node(self, scheduler: Any) -> Any:
        return scheduler.node()

    def offer(self, node: Any, request: OfferRequest) -> str:
        from pyln import grpc as clnpb

        req = clnpb.OfferRequest(**request.to_fields()).SerializeToString()
        raw = node.inner.call(OFFER_METHOD, bytes(req))
        return clnpb.OfferResponse.FromString(bytes(raw)).bolt12
