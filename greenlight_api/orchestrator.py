"""
BOLT12 offer orchestration.

Drives the Greenlight handshake for one offer request:

    UNAUTHENTICATED -> REGISTERED -> AUTHENTICATED -> NODE_READY -> OFFER_SUBMITTED

Every transition has exactly one failure type (see exceptions.py) and the
first failure aborts the request. There are no retries.
"""

from __future__ import annotations

import secrets
import time
from enum import Enum
from typing import Any, Callable, Optional, Type

import structlog

from .config import Settings
from .credentials import CredentialPair, load_credentials
from .exceptions import (
    AuthenticationError,
    HandshakeError,
    NodeUnavailableError,
    OfferCreationError,
    RegistrationError,
    SchedulerError,
    SignerError,
)
from .greenlight import NodeHostingClient, OfferRequest, Registration

logger = structlog.get_logger(__name__)

SEED_LENGTH = 32


class HandshakeState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    REGISTERED = "registered"
    AUTHENTICATED = "authenticated"
    NODE_READY = "node_ready"
    OFFER_SUBMITTED = "offer_submitted"


def new_seed() -> bytes:
    """Fresh signing seed."""
    return secrets.token_bytes(SEED_LENGTH)


def build_offer_request(
    description: str,
    expiry_seconds: Optional[int] = None,
    now: Optional[int] = None,
) -> OfferRequest:
    """
    Build the offer request: any amount, no recurrence, not single-use.

    absolute_expiry is only set when an expiry duration was given.
    """
    absolute_expiry = None
    if expiry_seconds is not None:
        now_ts = int(time.time()) if now is None else int(now)
        absolute_expiry = now_ts + int(expiry_seconds)
    return OfferRequest(
        amount="any",
        description=description,
        issuer="",
        label="",
        quantity_max=0,
        absolute_expiry=absolute_expiry,
    )


class OfferOrchestrator:
    """
    Creates BOLT12 offers on a Greenlight node.

    Args:
        settings: API settings (network, credentials sources, seed policy)
        client: node-hosting SDK adapter
        seed_source: callable returning the 32-byte signing seed. Defaults to
            a fresh seed per call; pass a constant for a per-process node.
        clock: unix time source used for offer expiry
    """

    def __init__(
        self,
        settings: Settings,
        client: NodeHostingClient,
        seed_source: Optional[Callable[[], bytes]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.client = client
        self.seed_source = seed_source or new_seed
        self.clock = clock
        self.state = HandshakeState.UNAUTHENTICATED

    @property
    def reuses_seed(self) -> bool:
        return self.settings.gl_seed_policy == "process"

    def _step(self, error_cls: Type[HandshakeError], fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except HandshakeError:
            raise
        except Exception as e:
            err = error_cls(e)
            logger.error(
                "Handshake step failed",
                step=err.step,
                state=self.state.value,
                error=err.reason,
            )
            raise err from e

    def _advance(self, state: HandshakeState) -> None:
        logger.debug("Handshake advanced", previous=self.state.value, state=state.value)
        self.state = state

    def _register(self, scheduler: Any, signer: Any) -> Registration:
        try:
            return self.client.register(scheduler, signer, self.settings.gl_invite_code)
        except Exception as e:
            if not self.reuses_seed:
                raise
            # Same seed as an earlier request: the node already exists.
            logger.warning("Registration refused, recovering existing node", error=str(e))
            try:
                return self.client.recover(scheduler, signer)
            except Exception as recover_error:
                raise RegistrationError(
                    recover_error,
                    reason=f"{e}; recover: {recover_error}",
                ) from recover_error

    def create_offer(self, expiry_seconds: Optional[int] = None) -> str:
        """
        Run the full handshake and create one offer.

        Returns:
            The bolt12 offer string

        Raises:
            CredentialMissingError, SchedulerError, SignerError,
            RegistrationError, AuthenticationError, NodeUnavailableError,
            OfferCreationError
        """
        self.state = HandshakeState.UNAUTHENTICATED
        network = self.settings.gl_network

        creds: CredentialPair = load_credentials(self.settings)

        scheduler = self._step(SchedulerError, self.client.scheduler, network, creds)
        signer = self._step(
            SignerError,
            lambda: self.client.signer(self.seed_source(), network, creds),
        )

        registration: Registration = self._step(RegistrationError, self._register, scheduler, signer)
        self._advance(HandshakeState.REGISTERED)

        scheduler = self._step(
            AuthenticationError, self.client.authenticate, scheduler, registration.device_creds
        )
        self._advance(HandshakeState.AUTHENTICATED)

        node = self._step(NodeUnavailableError, self.client.node, scheduler)
        self._advance(HandshakeState.NODE_READY)

        request = build_offer_request(
            self.settings.gl_offer_description,
            expiry_seconds,
            now=int(self.clock()),
        )
        if request.absolute_expiry is not None:
            logger.info(
                "Offer expiry set",
                absolute_expiry=request.absolute_expiry,
                duration=expiry_seconds,
            )

        offer = self._step(OfferCreationError, self.client.offer, node, request)
        if not offer:
            err = OfferCreationError(reason="node returned an empty offer")
            logger.error("Handshake step failed", step=err.step, state=self.state.value, error=err.reason)
            raise err
        self._advance(HandshakeState.OFFER_SUBMITTED)

        logger.info(
            "BOLT12 offer created",
            network=network,
            recovered=registration.recovered,
            expiry=request.absolute_expiry,
        )
        return offer
