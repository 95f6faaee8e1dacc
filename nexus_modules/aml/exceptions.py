"""AML compliance exceptions."""

from typing import Any

from nexus_kernel.exceptions import NexusError


class AmlError(NexusError):
    """Base exception for the AML compliance package."""

    code: str = "AML_ERROR"


class SarGenerationFailedError(AmlError):
    """
    A SAR could not be created or moved through its lifecycle.

    ``reason`` is a stable, machine-readable discriminator
    (``insufficient_evidence``, ``invalid_transition``, ...).
    """

    code: str = "SAR_GENERATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        reason: str,
        sar_id: str | None = None,
        party_id: str | None = None,
        **context: Any,
    ):
        self.reason = reason
        self.sar_id = sar_id
        self.party_id = party_id
        super().__init__(message, **context)

    @classmethod
    def insufficient_evidence(cls, party_id: str, risk_score: int) -> "SarGenerationFailedError":
        return cls(
            f"Insufficient evidence to generate SAR for party {party_id} (risk score {risk_score})",
            reason="insufficient_evidence",
            party_id=party_id,
            risk_score=risk_score,
        )

    @classmethod
    def invalid_narrative(cls, sar_id: str, length: int, minimum: int) -> "SarGenerationFailedError":
        return cls(
            f"SAR {sar_id} narrative is {length} characters; at least {minimum} required",
            reason="invalid_narrative",
            sar_id=sar_id,
            length=length,
            minimum=minimum,
        )

    @classmethod
    def invalid_transition(cls, sar_id: str, from_status: str, to_status: str) -> "SarGenerationFailedError":
        return cls(
            f"SAR {sar_id} cannot transition from {from_status} to {to_status}",
            reason="invalid_transition",
            sar_id=sar_id,
            from_status=from_status,
            to_status=to_status,
        )

    @classmethod
    def approval_required(cls, sar_id: str, requirement: str) -> "SarGenerationFailedError":
        messages = {
            "different_officer": "must be approved by a different officer than the preparer",
            "approval": "must be approved before submission to the authority",
        }
        detail = messages.get(requirement, requirement)
        return cls(
            f"SAR {sar_id} {detail}",
            reason="approval_required",
            sar_id=sar_id,
            requirement=requirement,
        )

    @classmethod
    def not_editable(cls, sar_id: str, status: str) -> "SarGenerationFailedError":
        return cls(
            f"SAR {sar_id} cannot be edited in status {status}",
            reason="not_editable",
            sar_id=sar_id,
            status=status,
        )

    @classmethod
    def already_submitted(cls, sar_id: str) -> "SarGenerationFailedError":
        return cls(
            f"SAR {sar_id} has already been submitted to the authority",
            reason="already_submitted",
            sar_id=sar_id,
        )

    @classmethod
    def filing_service_error(cls, sar_id: str, detail: str) -> "SarGenerationFailedError":
        return cls(
            f"Filing service failed for SAR {sar_id}: {detail}",
            reason="filing_service_error",
            sar_id=sar_id,
            detail=detail,
        )

    @classmethod
    def validation_failed(cls, sar_id: str, errors: list[str]) -> "SarGenerationFailedError":
        return cls(
            f"SAR {sar_id} failed validation: {'; '.join(errors)}",
            reason="validation_failed",
            sar_id=sar_id,
            errors=list(errors),
        )

    @classmethod
    def not_found(cls, sar_id: str) -> "SarGenerationFailedError":
        return cls(f"SAR not found: {sar_id}", reason="not_found", sar_id=sar_id)


class AmlAssessmentError(AmlError):
    """Risk assessment could not be completed."""

    code: str = "AML_ASSESSMENT_FAILED"

    def __init__(self, message: str, *, party_id: str, **context: Any):
        self.party_id = party_id
        super().__init__(message, **context)

    @classmethod
    def prohibited_jurisdiction(cls, party_id: str, country: str) -> "AmlAssessmentError":
        return cls(
            f"Party {party_id} is domiciled in prohibited jurisdiction {country}",
            party_id=party_id,
            country=country,
        )
