from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .exceptions import ClientValidationError, InvalidTransitionError, RoleRequiredError, ValidationIssue
from .models import OperatorIdentity
from .models_closures import CashClosure, ClosureStatus, parse_closure_status
from .telemetry import NULL_TELEMETRY, TelemetryLogger

logger = logging.getLogger(__name__)


class ClosureStatusWriter(Protocol):
    def patch_status(
        self,
        closure_id: str,
        status: ClosureStatus,
        *,
        supervisor_name: str | None = None,
        supervisor_signature: str | None = None,
        rejection_reason: str | None = None,
    ) -> CashClosure: ...


class ReviewerCheck(Protocol):
    def is_non_seller(self, identity: OperatorIdentity) -> bool: ...


@dataclass(frozen=True)
class ClosureActionAvailability:
    can_approve: bool
    can_reject: bool


def closure_action_availability(status: str | ClosureStatus, *, can_review: bool) -> ClosureActionAvailability:
    if not can_review:
        return ClosureActionAvailability(False, False)
    try:
        pending = parse_closure_status(status) is ClosureStatus.PENDING
    except ValueError:
        pending = False
    return ClosureActionAvailability(can_approve=pending, can_reject=pending)


class ClosureApproval:
    """PENDING -> APPROVED | REJECTED for one persisted closure.

    Local guards run first (state, then required fields), then the reviewer
    role check, then exactly one PATCH. ``closure`` only changes when the
    backend accepts the transition.
    """

    def __init__(
        self,
        closure: CashClosure,
        *,
        writer: ClosureStatusWriter,
        roles: ReviewerCheck,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        self.closure = closure
        self._writer = writer
        self._roles = roles
        self._telemetry = telemetry or NULL_TELEMETRY

    @property
    def status(self) -> ClosureStatus:
        return self.closure.status

    def approve(
        self,
        actor: OperatorIdentity,
        supervisor_name: str,
        signature: str | None = None,
    ) -> CashClosure:
        self._require_pending("approve")
        if not supervisor_name or not supervisor_name.strip():
            raise ClientValidationError([ValidationIssue(field="supervisor_name", reason="is required")])
        self._require_reviewer(actor, "approve")
        updated = self._writer.patch_status(
            self.closure.id,
            ClosureStatus.APPROVED,
            supervisor_name=supervisor_name.strip(),
            supervisor_signature=signature,
        )
        return self._apply(updated, actor, "closure_approved")

    def reject(self, actor: OperatorIdentity, reason: str) -> CashClosure:
        self._require_pending("reject")
        if not reason or not reason.strip():
            raise ClientValidationError([ValidationIssue(field="rejection_reason", reason="is required")])
        self._require_reviewer(actor, "reject")
        updated = self._writer.patch_status(
            self.closure.id,
            ClosureStatus.REJECTED,
            rejection_reason=reason.strip(),
        )
        return self._apply(updated, actor, "closure_rejected")

    def _apply(self, updated: CashClosure, actor: OperatorIdentity, event: str) -> CashClosure:
        previous = self.closure.status
        self.closure = updated
        logger.info(
            event,
            extra={"closure_id": updated.id, "from_status": previous.value, "to_status": updated.status.value},
        )
        self._telemetry.record(
            "approval",
            event,
            actor_id=actor.user_id,
            success=True,
            context={"closure_id": updated.id, "status": updated.status.value},
        )
        return updated

    def _require_pending(self, action: str) -> None:
        if self.closure.status.is_terminal:
            raise InvalidTransitionError("closure", self.closure.status.value, action)

    def _require_reviewer(self, actor: OperatorIdentity, action: str) -> None:
        if not self._roles.is_non_seller(actor):
            logger.warning("closure_review_denied", extra={"closure_id": self.closure.id, "user_id": actor.user_id})
            raise RoleRequiredError(f"Only supervisors may {action} a cash closure")
