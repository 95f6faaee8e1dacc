"""
Gateway Manager Tests.

Routes operations through ``GatewayManager`` to a ``TestGateway`` and
checks logging, attempt recording and availability handling.
"""

import pytest

from nexus_kernel.values import Money
from nexus_modules.payment_gateway.exceptions import (
    AuthorizationFailedError,
    GatewayNotFoundError,
    GatewayUnavailableError,
)
from nexus_modules.payment_gateway.gateway import TestGateway
from nexus_modules.payment_gateway.models import (
    AuthorizeRequest,
    CaptureRequest,
    GatewayCredentials,
    GatewayProvider,
    GatewayStatus,
    RefundRequest,
    TransactionStatus,
    VoidRequest,
)
from nexus_modules.payment_gateway.service import GatewayManager


class RecordingRecorder:
    def __init__(self):
        self.attempts = []

    def record(self, attempt):
        self.attempts.append(attempt)


@pytest.fixture
def recorder():
    return RecordingRecorder()


@pytest.fixture
def gateway(deterministic_clock):
    return TestGateway(deterministic_clock)


@pytest.fixture
def manager(gateway, recorder, deterministic_clock):
    manager = GatewayManager(deterministic_clock, recorder)
    manager.register_gateway(gateway, GatewayCredentials("sk_test_1234567890"))
    return manager


def authorize_request(token=TestGateway.TOKEN_SUCCESS, amount="80.00"):
    return AuthorizeRequest(Money.of(amount, "USD"), token, order_id="ORD-1")


class TestRegistration:

    def test_register_initializes_gateway(self, manager, gateway):
        assert gateway.is_initialized
        assert manager.has_gateway(GatewayProvider.TEST)
        assert manager.get_gateway(GatewayProvider.TEST) is gateway
        assert manager.providers == [GatewayProvider.TEST]

    def test_unknown_provider(self, manager):
        assert not manager.has_gateway(GatewayProvider.STRIPE)
        with pytest.raises(GatewayNotFoundError, match="stripe"):
            manager.authorize(GatewayProvider.STRIPE, authorize_request())

    def test_health(self, manager, gateway):
        gateway.set_status(GatewayStatus.DEGRADED)
        assert manager.health() == {GatewayProvider.TEST: GatewayStatus.DEGRADED}


class TestRouting:

    def test_full_payment_lifecycle_is_recorded(self, manager, recorder):
        auth = manager.authorize(GatewayProvider.TEST, authorize_request())
        capture = manager.capture(GatewayProvider.TEST, CaptureRequest(auth.authorization_id))
        refund = manager.refund(
            GatewayProvider.TEST,
            RefundRequest(capture.capture_id, Money.of("10", "USD"), reason="damaged"),
        )

        assert refund.success
        assert [a.operation for a in recorder.attempts] == ["authorize", "capture", "refund"]
        assert all(a.success for a in recorder.attempts)
        assert recorder.attempts[0].request_reference == "ORD-1"
        assert recorder.attempts[0].result_reference == auth.authorization_id
        assert recorder.attempts[1].amount == Money.of("80.00", "USD")
        assert recorder.attempts[2].status is TransactionStatus.PARTIALLY_REFUNDED

    def test_void(self, manager, recorder):
        auth = manager.authorize(GatewayProvider.TEST, authorize_request())
        result = manager.void(GatewayProvider.TEST, VoidRequest(auth.authorization_id))

        assert result.status is TransactionStatus.VOIDED
        assert recorder.attempts[-1].operation == "void"

    def test_failure_is_logged_recorded_and_raised(self, manager, recorder, captured_logs):
        with pytest.raises(AuthorizationFailedError):
            manager.authorize(GatewayProvider.TEST, authorize_request(token="tok_decline"))

        attempt = recorder.attempts[-1]
        assert not attempt.success
        assert attempt.error_code == "card_declined"

        failures = [r for r in captured_logs() if r["message"] == "gateway_authorize_failed"]
        assert failures[0]["error_code"] == "card_declined"
        assert failures[0]["provider"] == "test"

    def test_success_is_logged(self, manager, captured_logs):
        manager.authorize(GatewayProvider.TEST, authorize_request())
        records = [r for r in captured_logs() if r["message"] == "gateway_authorize_succeeded"]
        assert records[0]["amount"] == "USD 80.00"

    def test_3ds_is_recorded_as_unsuccessful(self, manager, recorder):
        result = manager.authorize(GatewayProvider.TEST, authorize_request(token="tok_3ds"))
        assert result.requires_action
        assert recorder.attempts[-1].status is TransactionStatus.REQUIRES_ACTION
        assert not recorder.attempts[-1].success

    def test_works_without_recorder(self, gateway, deterministic_clock):
        manager = GatewayManager(deterministic_clock)
        manager.register_gateway(gateway, GatewayCredentials("sk_test_1234567890"))
        assert manager.authorize(GatewayProvider.TEST, authorize_request()).success


class TestAvailability:

    @pytest.mark.parametrize("status", [GatewayStatus.DOWN, GatewayStatus.MAINTENANCE])
    def test_unavailable_gateway_rejected(self, manager, gateway, recorder, status):
        gateway.set_status(status)
        with pytest.raises(GatewayUnavailableError, match=status.value):
            manager.authorize(GatewayProvider.TEST, authorize_request())
        assert recorder.attempts == []

    def test_degraded_gateway_still_used(self, manager, gateway):
        gateway.set_status(GatewayStatus.DEGRADED)
        assert manager.authorize(GatewayProvider.TEST, authorize_request()).success
