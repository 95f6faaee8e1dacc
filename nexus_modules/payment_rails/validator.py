"""
Rail transaction validation (``nexus_modules.payment_rails.validator``).

Responsibility
--------------
Collects every rule a payment request breaks for a given rail: beneficiary
details, amount and currency, bank account and routing data, sanctions
screening, availability and the rules specific to each rail type.

Failure modes
-------------
* ``RailValidationError`` -- from ``validate``, carrying all messages.
"""

from __future__ import annotations

import re
from decimal import Decimal

from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_rails.exceptions import RailValidationError
from nexus_modules.payment_rails.models import (
    BankAccount,
    PaymentRail,
    RailTransactionRequest,
    RailType,
    routing_number_errors,
)

logger = get_logger("modules.payment_rails.validator")

MAX_BENEFICIARY_NAME_LENGTH = 35
MIN_ACCOUNT_NUMBER_LENGTH = 4
MAX_ACCOUNT_NUMBER_LENGTH = 17
MAX_CHECK_MEMO_LENGTH = 40
RTGS_MINIMUM = Decimal("1000")
SANCTIONED_COUNTRIES = frozenset({"KP", "IR", "SY", "CU", "VE"})

_SWIFT = re.compile(r"^[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?$")
_IBAN_PREFIX = re.compile(r"^[A-Z]{2}[0-9]{2}")


def is_valid_swift(code: str) -> bool:
    """SWIFT/BIC: 4-letter bank, 2-letter country, 2 location and optional 3 branch characters."""
    return bool(_SWIFT.match(code.upper()))


def is_valid_iban(iban: str) -> bool:
    """ISO 13616 IBAN: 15-34 characters whose rearranged numeric form is 1 mod 97."""
    compact = iban.replace(" ", "").upper()
    if not 15 <= len(compact) <= 34 or not _IBAN_PREFIX.match(compact):
        return False
    if not (compact.isascii() and compact.isalnum()):
        return False
    rearranged = compact[4:] + compact[:4]
    numeric = "".join(str(int(char, 36)) for char in rearranged)
    return int(numeric) % 97 == 1


class RailValidator:
    """Validates ``RailTransactionRequest``s against a ``PaymentRail``."""

    def validate(self, request: RailTransactionRequest, rail: PaymentRail) -> None:
        errors = self.validation_errors(request, rail)
        if errors:
            logger.warning(
                "rail_validation_failed",
                extra={"rail_type": rail.rail_type.value, "error_count": len(errors)},
            )
            raise RailValidationError.with_errors(errors, rail.rail_type.value)

    def is_valid(self, request: RailTransactionRequest, rail: PaymentRail) -> bool:
        return not self.validation_errors(request, rail)

    def validation_errors(self, request: RailTransactionRequest, rail: PaymentRail) -> list[str]:
        errors: list[str] = []
        name = request.beneficiary_name or ""
        if not name.strip():
            errors.append("Beneficiary name is required.")
        if len(name) > MAX_BENEFICIARY_NAME_LENGTH:
            errors.append(f"Beneficiary name exceeds maximum length ({MAX_BENEFICIARY_NAME_LENGTH} characters).")

        errors.extend(self.validate_amount(request.amount, rail))
        if request.beneficiary_account is not None:
            errors.extend(self.validate_bank_account(request.beneficiary_account, rail.rail_type))
        if request.routing_number is not None:
            errors.extend(routing_number_errors(request.routing_number))
        errors.extend(self.screen_sanctions(name, request.beneficiary_country))
        if not rail.is_available():
            errors.append(f"{rail.rail_type.value} rail is currently unavailable.")
        errors.extend(self._rail_specific(request, rail.rail_type))
        return errors

    def validate_amount(self, amount: Money, rail: PaymentRail) -> list[str]:
        errors = []
        capabilities = rail.capabilities
        rail_name = rail.rail_type.value
        if not capabilities.supports_currency(amount.currency.code):
            errors.append(f"Currency {amount.currency.code} is not supported by {rail_name} rail.")
        minimum, maximum = capabilities.minimum_amount, capabilities.maximum_amount
        if minimum is not None and minimum.currency == amount.currency and amount < minimum:
            errors.append(f"Amount is below minimum of {minimum.format()} for {rail_name} rail.")
        if maximum is not None and maximum.currency == amount.currency and amount > maximum:
            errors.append(f"Amount exceeds maximum of {maximum.format()} for {rail_name} rail.")
        return errors

    def validate_bank_account(self, account: BankAccount, rail_type: RailType) -> list[str]:
        errors = []
        if len(account.account_number) < MIN_ACCOUNT_NUMBER_LENGTH:
            errors.append("Account number is too short.")
        if len(account.account_number) > MAX_ACCOUNT_NUMBER_LENGTH:
            errors.append("Account number exceeds maximum length.")

        if rail_type is RailType.ACH:
            if account.routing_number is None:
                errors.append("Routing number is required for ACH transactions.")
            else:
                errors.extend(routing_number_errors(account.routing_number))
        elif rail_type is RailType.WIRE:
            if account.routing_number is None and account.swift_code is None:
                errors.append("Either routing number or SWIFT code is required for wire transfers.")
            if account.swift_code is not None and not is_valid_swift(account.swift_code):
                errors.append("Invalid SWIFT/BIC code format.")
            if account.iban is not None and not is_valid_iban(account.iban):
                errors.append("Invalid IBAN format.")
        return errors

    def screen_sanctions(self, beneficiary_name: str, beneficiary_country: str | None = None) -> list[str]:
        # TODO: call a sanctions-list screening service for beneficiary_name once one is wired in.
        if beneficiary_country is not None and beneficiary_country.upper() in SANCTIONED_COUNTRIES:
            return [f"Transactions to {beneficiary_country.upper()} are not permitted due to sanctions."]
        return []

    def _rail_specific(self, request: RailTransactionRequest, rail_type: RailType) -> list[str]:
        errors = []
        if rail_type is RailType.ACH:
            if request.amount.currency.code != "USD":
                errors.append("ACH transactions must be in USD.")
            if request.sec_code is None and "sec_code" not in request.metadata:
                errors.append("SEC code is required for ACH transactions.")
        elif rail_type is RailType.WIRE:
            if request.is_international and not request.purpose_of_payment:
                errors.append("Purpose of payment is required for international wires.")
            if request.is_international and not request.beneficiary_address:
                errors.append("Beneficiary address is required for international wires.")
        elif rail_type is RailType.CHECK:
            if not request.beneficiary_address:
                errors.append("Payee address is required for check issuance.")
            if request.memo is not None and len(request.memo) > MAX_CHECK_MEMO_LENGTH:
                errors.append(f"Check memo exceeds maximum length ({MAX_CHECK_MEMO_LENGTH} characters).")
        elif rail_type is RailType.RTGS:
            if request.amount.amount < RTGS_MINIMUM:
                errors.append("RTGS is for high-value transactions only (minimum 1,000).")
        elif rail_type is RailType.VIRTUAL_CARD:
            if "vendor_id" not in request.metadata:
                errors.append("Vendor ID is required for virtual card issuance.")
        return errors
