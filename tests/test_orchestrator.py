"""
Tests for the offer handshake.
"""

import pytest

from greenlight_api.exceptions import (
    AuthenticationError,
    CredentialMissingError,
    NodeUnavailableError,
    OfferCreationError,
    RegistrationError,
    SchedulerError,
    SignerError,
)
from greenlight_api.orchestrator import (
    SEED_LENGTH,
    HandshakeState,
    OfferOrchestrator,
    build_offer_request,
    new_seed,
)

from conftest import CERT_PEM, KEY_PEM, FakeNodeClient, make_settings

NOW = 1_700_000_000


def _orchestrator(client, **overrides):
    settings = make_settings(gl_cert_content=CERT_PEM, gl_key_content=KEY_PEM, **overrides)
    return OfferOrchestrator(settings, client, clock=lambda: NOW)


class TestBuildOfferRequest:
    """Tests for offer request construction."""

    def test_no_expiry(self):
        req = build_offer_request("desc")
        assert req.absolute_expiry is None
        assert "absolute_expiry" not in req.to_fields()

    def test_expiry_is_now_plus_duration(self):
        req = build_offer_request("desc", 3600, now=NOW)
        assert req.absolute_expiry == NOW + 3600

    def test_zero_expiry_is_kept(self):
        req = build_offer_request("desc", 0, now=NOW)
        assert req.absolute_expiry == NOW

    def test_fixed_fields(self):
        req = build_offer_request("Shopstr username registration")
        assert req.amount == "any"
        assert req.issuer == ""
        assert req.label == ""
        assert req.quantity_max == 0
        assert req.single_use is None
        assert req.recurrence is None
        assert req.recurrence_limit is None

        fields = req.to_fields()
        assert set(fields) == {"amount", "description", "issuer", "label", "quantity_max"}


class TestCreateOffer:
    """Tests for OfferOrchestrator.create_offer."""

    def test_happy_path(self, fake_client):
        orchestrator = _orchestrator(fake_client)

        offer = orchestrator.create_offer()

        assert offer == fake_client.offer_string
        assert fake_client.calls == ["scheduler", "signer", "register", "authenticate", "node", "offer"]
        assert orchestrator.state == HandshakeState.OFFER_SUBMITTED
        assert fake_client.creds.cert == CERT_PEM.encode()

    def test_expiry_passed_through(self, fake_client):
        _orchestrator(fake_client).create_offer(3600)

        (request,) = fake_client.requests
        assert request.absolute_expiry == NOW + 3600

    def test_no_expiry_leaves_request_unset(self, fake_client):
        _orchestrator(fake_client).create_offer(None)

        assert fake_client.requests[0].absolute_expiry is None

    def test_configured_description_and_invite(self, fake_client):
        _orchestrator(
            fake_client,
            gl_offer_description="Coffee",
            gl_invite_code="INVITE",
        ).create_offer()

        assert fake_client.requests[0].description == "Coffee"
        assert fake_client.invite_code == "INVITE"

    def test_missing_credentials_stop_before_scheduler(self, fake_client):
        orchestrator = OfferOrchestrator(make_settings(), fake_client)

        with pytest.raises(CredentialMissingError):
            orchestrator.create_offer()
        assert fake_client.calls == []

    @pytest.mark.parametrize(
        "step,error_cls,state",
        [
            ("scheduler", SchedulerError, HandshakeState.UNAUTHENTICATED),
            ("signer", SignerError, HandshakeState.UNAUTHENTICATED),
            ("register", RegistrationError, HandshakeState.UNAUTHENTICATED),
            ("authenticate", AuthenticationError, HandshakeState.REGISTERED),
            ("node", NodeUnavailableError, HandshakeState.AUTHENTICATED),
            ("offer", OfferCreationError, HandshakeState.NODE_READY),
        ],
    )
    def test_each_step_has_its_own_error(self, step, error_cls, state):
        client = FakeNodeClient(fail_on=step)
        orchestrator = _orchestrator(client)

        with pytest.raises(error_cls) as exc:
            orchestrator.create_offer()

        assert client.calls[-1] == step
        assert orchestrator.state == state
        assert exc.value.message.startswith(f"Failed to {error_cls.step}:")
        assert f"{step} exploded" in exc.value.message
        assert isinstance(exc.value.cause, RuntimeError)

    def test_empty_offer_is_failure(self):
        client = FakeNodeClient(offer="")

        with pytest.raises(OfferCreationError, match="empty offer"):
            _orchestrator(client).create_offer()


class TestSeedPolicy:
    """Tests for signing seed lifecycle."""

    def test_new_seed_length(self):
        assert len(new_seed()) == SEED_LENGTH
        assert new_seed() != new_seed()

    def test_request_policy_uses_fresh_seed_each_call(self, fake_client):
        orchestrator = _orchestrator(fake_client)
        orchestrator.create_offer()
        orchestrator.create_offer()

        assert len(fake_client.seeds) == 2
        assert fake_client.seeds[0] != fake_client.seeds[1]
        assert "recover" not in fake_client.calls

    def test_request_policy_does_not_recover(self):
        client = FakeNodeClient(fail_on="register")

        with pytest.raises(RegistrationError):
            _orchestrator(client).create_offer()
        assert "recover" not in client.calls

    def test_process_policy_recovers_known_node(self, fake_client):
        seed = bytes(range(32))
        settings = make_settings(gl_cert_content=CERT_PEM, gl_key_content=KEY_PEM, gl_seed_policy="process")
        orchestrator = OfferOrchestrator(settings, fake_client, seed_source=lambda: seed)

        orchestrator.create_offer()
        orchestrator.create_offer()

        assert fake_client.seeds == [seed, seed]
        assert fake_client.calls.count("register") == 2
        assert fake_client.calls.count("recover") == 1

    def test_process_policy_recover_failure_is_registration_error(self):
        client = FakeNodeClient(fail_on="recover")
        seed = bytes(32)
        client.registered_seeds.add(seed)
        settings = make_settings(gl_cert_content=CERT_PEM, gl_key_content=KEY_PEM, gl_seed_policy="process")

        with pytest.raises(RegistrationError, match="recover exploded") as exc:
            OfferOrchestrator(settings, client, seed_source=lambda: seed).create_offer()

        # Both the registration refusal and the recover failure are reported
        assert exc.value.message == (
            "Failed to register node: node already registered; recover: recover exploded"
        )
        assert client.calls[-2:] == ["register", "recover"]
