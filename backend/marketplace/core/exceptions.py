"""
Domain exceptions raised by the reservation engine and its stores.

These carry no transport concerns; the HTTP layer maps them to responses in
marketplace.api.errors. Store and driver failures (connection loss, timeouts)
are never wrapped and reach the caller unchanged.
"""

from typing import Any, Dict, Iterable, Optional


class DomainError(Exception):
    """Base exception for all domain-specific errors."""

    default_code = "domain_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DomainError):
    """Unknown booking, slot or service id."""

    default_code = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )


class ValidationError(DomainError):
    """Request is well-formed but violates a business rule."""

    default_code = "validation_error"


class InvalidAmountError(ValidationError):
    """BookingDetails or Payment amounts do not add up."""

    default_code = "invalid_amount"


class ConflictError(DomainError):
    """Request collides with the current state of another record."""

    default_code = "conflict"


class SlotConflictError(ConflictError):
    """
    One or more slots were not AVAILABLE when the reservation was applied.
    Retryable by the caller against fresh availability.
    """

    default_code = "slot_conflict"

    def __init__(self, slot_ids: Iterable[str], message: str = "slot no longer available, pick another") -> None:
        super().__init__(message, details={"slot_ids": sorted(slot_ids)})
        self.slot_ids = self.details["slot_ids"]


class SlotOverlapError(ConflictError):
    """A vendor tried to publish a slot overlapping an existing one."""

    default_code = "slot_overlap"


class InvalidTransitionError(DomainError):
    """State machine violation. Not retryable."""

    default_code = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"{entity} cannot move from {current} to {target}",
            details={"entity": entity, "current": current, "target": target},
        )
        self.current = current
        self.target = target


class TerminalStateError(InvalidTransitionError):
    """Attempted mutation of a COMPLETED or CANCELLED booking."""

    default_code = "terminal_state"

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(entity, current, target, message=f"{entity} is {current} and accepts no further transitions")


class StaleStateError(DomainError):
    """A compare-and-swap update matched no row: the stored state moved on."""

    default_code = "stale_state"

    def __init__(self, entity: str, entity_id: str, expected: str) -> None:
        super().__init__(
            f"{entity} {entity_id} is no longer {expected}",
            details={"entity": entity, "id": entity_id, "expected": expected},
        )
        self.entity_id = entity_id
