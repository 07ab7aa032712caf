"""
Reservation engine: slot reservation and booking lifecycle.

CONCURRENCY STRATEGY: Compare-and-swap inside one transaction
===============================================================

Problem:
  Two customers pick the same AVAILABLE slot at the same moment.
  Both read status=AVAILABLE, both write BOOKED, both get a booking.
  Result: a slot held by two bookings.

Solution:
  Every status change is a conditional update:

    UPDATE service_slots SET status='BOOKED', booking_id=:booking
    WHERE id=:slot AND status='AVAILABLE'

  1. Open one transaction (UnitOfWork.transaction)
  2. Insert the PENDING booking
  3. Swap every requested slot AVAILABLE -> BOOKED, in sorted id order
  4. If any swap touches zero rows, raise SlotConflictError; the transaction
     rolls back the booking and every slot already swapped

  The engine holds no in-process locks, so any number of workers or
  processes can share one database. Of N concurrent requests for a slot,
  exactly one commits; the rest see SlotConflictError and should retry
  against fresh availability. There is no automatic retry here.

  Booking status moves the same way (BookingStore.update_status). When such a
  swap loses, the booking is re-read and the transition re-validated so the
  caller gets the real reason (terminal state, wrong state) rather than a
  generic failure.

Side effects outside the database (refund intents) are emitted only after the
transaction has committed.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, NamedTuple, Optional

from sqlalchemy.exc import IntegrityError

from marketplace.core.clock import SystemClock, ensure_utc, new_id
from marketplace.core.exceptions import (
    InvalidAmountError,
    InvalidTransitionError,
    NotFoundError,
    SlotConflictError,
    StaleStateError,
    ValidationError,
)
from marketplace.core.logging import get_logger
from marketplace.core.metrics import (
    booking_latency,
    holds_released,
    record_booking_operation,
    record_refund_intent,
    slot_conflicts,
)
from marketplace.models.booking import Booking, BookingDetails, BookingStatus, Payment
from marketplace.models.slot import SlotStatus
from marketplace.schemas.booking import BookingDetailsInput, PaymentInput, RefundIntent
from marketplace.schemas.service import ServiceSnapshot
from marketplace.services.interfaces.refund_sink import LoggingRefundSink, RefundSink
from marketplace.services.transitions import HOLDING_BOOKING_STATES, ensure_booking_transition
from marketplace.stores.unit_of_work import Transaction, UnitOfWork

logger = get_logger(__name__)

HOLD_EXPIRED_REASON = "hold_expired"
DEFAULT_HOLD_TTL = timedelta(minutes=15)


class CancelOutcome(NamedTuple):
    booking: Booking
    refund_intent: Optional[RefundIntent]
    released: bool


class ReservationEngine:
    def __init__(
        self,
        uow: UnitOfWork,
        clock: Optional[SystemClock] = None,
        refund_sink: Optional[RefundSink] = None,
        hold_ttl: timedelta = DEFAULT_HOLD_TTL,
        id_factory: Callable[[], str] = new_id,
        max_slots_per_booking: int = 20,
    ):
        self._uow = uow
        self._clock = clock or SystemClock()
        self._refund_sink = refund_sink or LoggingRefundSink()
        self._hold_ttl = hold_ttl
        self._new_id = id_factory
        self._max_slots = max_slots_per_booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Booking:
        """Booking with its slots, details and payment loaded."""
        async with self._uow.transaction() as tx:
            return await self._require_booking(tx, booking_id, with_related=True)

    async def list_bookings(
        self,
        customer_id: Optional[str] = None,
        vendor_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        async with self._uow.transaction() as tx:
            return await tx.bookings.list_bookings(customer_id=customer_id, vendor_id=vendor_id, status=status)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        customer_id: str,
        service_id: str,
        slot_ids: Iterable[str],
        scheduled_date: datetime,
    ) -> Booking:
        """
        Reserve `slot_ids` for a new PENDING booking.

        All slots flip to BOOKED together or not at all. Raises
        SlotConflictError when any slot is not AVAILABLE by the time the
        conditional update runs.
        """
        slot_ids = list(slot_ids)
        self._validate_slot_request(slot_ids)
        started = time.perf_counter()

        try:
            async with self._uow.transaction() as tx:
                service = await tx.services.get(service_id)
                if service is None:
                    raise NotFoundError("Service", service_id)
                if not service.is_active:
                    raise ValidationError(
                        f"Service {service_id} is not accepting bookings",
                        details={"service_id": service_id},
                    )

                slots = await tx.slots.get_many(slot_ids)
                found = {slot.id for slot in slots}
                missing = [slot_id for slot_id in slot_ids if slot_id not in found]
                if missing:
                    raise NotFoundError("ServiceSlot", missing[0])

                foreign = sorted(slot.id for slot in slots if slot.service_id != service_id)
                if foreign:
                    raise ValidationError(
                        f"Slots do not belong to service {service_id}",
                        details={"slot_ids": foreign},
                    )

                unavailable = [slot.id for slot in slots if slot.status != SlotStatus.AVAILABLE.value]
                if unavailable:
                    raise SlotConflictError(unavailable)

                now = self._clock.now()
                booking = await tx.bookings.create(
                    Booking(
                        id=self._new_id(),
                        customer_id=customer_id,
                        service_id=service_id,
                        status=BookingStatus.PENDING.value,
                        scheduled_date=scheduled_date,
                        created_at=now,
                        updated_at=now,
                    )
                )

                # Id order: concurrent multi-slot requests lock rows in the same sequence
                for slot_id in sorted(slot_ids):
                    try:
                        await tx.slots.compare_and_swap_status(
                            slot_id,
                            SlotStatus.AVAILABLE,
                            SlotStatus.BOOKED,
                            booking_id=booking.id,
                        )
                    except StaleStateError as e:
                        raise SlotConflictError([slot_id]) from e

                booking = await tx.bookings.get(booking.id, with_related=True)
        except SlotConflictError as e:
            slot_conflicts.inc()
            record_booking_operation("create", "conflict")
            logger.info(
                "slot_conflict",
                customer_id=customer_id,
                service_id=service_id,
                slot_ids=e.slot_ids,
            )
            raise
        except (NotFoundError, ValidationError):
            record_booking_operation("create", "rejected")
            raise
        finally:
            booking_latency.labels(operation="create").observe(time.perf_counter() - started)

        record_booking_operation("create", "success")
        logger.info(
            "booking_created",
            booking_id=booking.id,
            customer_id=customer_id,
            service_id=service_id,
            slot_ids=sorted(slot_ids),
        )
        return booking

    async def confirm_booking(
        self,
        booking_id: str,
        details: BookingDetailsInput,
        payment: PaymentInput,
    ) -> Booking:
        """
        Attach the price snapshot and the processor's payment result, then
        move PENDING -> ACTIVE. All three writes commit together.
        """
        self._validate_amounts(details, payment)

        try:
            async with self._uow.transaction() as tx:
                booking = await self._require_booking(tx, booking_id)
                current = ensure_booking_transition(booking.status, BookingStatus.ACTIVE)

                service = await tx.services.get(booking.service_id)
                if service is None:
                    raise NotFoundError("Service", booking.service_id)
                now = self._clock.now()

                await tx.bookings.add_details(
                    BookingDetails(
                        id=self._new_id(),
                        booking_id=booking_id,
                        service_snapshot=ServiceSnapshot.model_validate(service).to_json(),
                        unit_price=details.unit_price,
                        quantity=details.quantity,
                        tax_total=details.tax_total,
                        grand_total=details.grand_total,
                        created_at=now,
                    )
                )
                await tx.bookings.add_payment(
                    Payment(
                        id=self._new_id(),
                        booking_id=booking_id,
                        amount=payment.amount,
                        processor_id=payment.processor_id,
                        status=payment.status,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await tx.bookings.update_status(
                    booking_id, current, BookingStatus.ACTIVE, confirmed_at=now, updated_at=now
                )
                booking = await tx.bookings.get(booking_id, with_related=True)
        except (StaleStateError, IntegrityError):
            # Lost to a concurrent confirm or cancel; details/payment are unique per booking
            record_booking_operation("confirm", "conflict")
            await self._raise_lost_race(booking_id, BookingStatus.ACTIVE)
            raise
        except (InvalidTransitionError, NotFoundError):
            record_booking_operation("confirm", "rejected")
            raise

        record_booking_operation("confirm", "success")
        logger.info(
            "booking_confirmed",
            booking_id=booking_id,
            grand_total=str(details.grand_total),
            processor_id=payment.processor_id,
            payment_status=payment.status,
        )
        return booking

    async def complete_booking(self, booking_id: str) -> Booking:
        """ACTIVE -> COMPLETED. Slots stay BOOKED as the historical record."""
        try:
            async with self._uow.transaction() as tx:
                booking = await self._require_booking(tx, booking_id)
                current = ensure_booking_transition(booking.status, BookingStatus.COMPLETED)

                now = self._clock.now()
                if ensure_utc(booking.scheduled_date) > now:
                    raise InvalidTransitionError(
                        "Booking",
                        current.value,
                        BookingStatus.COMPLETED.value,
                        message=f"Booking {booking_id} is scheduled in the future and cannot be completed yet",
                    )

                await tx.bookings.update_status(
                    booking_id, current, BookingStatus.COMPLETED, completed_at=now, updated_at=now
                )
                booking = await tx.bookings.get(booking_id, with_related=True)
        except StaleStateError:
            record_booking_operation("complete", "conflict")
            await self._raise_lost_race(booking_id, BookingStatus.COMPLETED)
            raise
        except (InvalidTransitionError, NotFoundError):
            record_booking_operation("complete", "rejected")
            raise

        record_booking_operation("complete", "success")
        logger.info("booking_completed", booking_id=booking_id)
        return booking

    async def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """
        PENDING/ACTIVE -> CANCELLED, releasing every held slot back to AVAILABLE
        in the same transaction. Cancelling an already CANCELLED booking
        returns it unchanged. A paid booking is flagged for refund and a
        RefundIntent goes to the refund sink once the cancellation commits.
        """
        outcome = await self._cancel(booking_id, reason, allowed_from=HOLDING_BOOKING_STATES)
        await self._emit_refund(outcome.refund_intent)
        return outcome.booking

    async def release_expired_holds(self, now: Optional[datetime] = None) -> int:
        """
        Cancel PENDING bookings older than the hold TTL that never received a
        Payment. Each hold is released in its own transaction; holds confirmed
        between the scan and the cancel are left alone.
        """
        now = now or self._clock.now()
        cutoff = now - self._hold_ttl

        async with self._uow.transaction() as tx:
            expired = await tx.bookings.find_expired_holds(cutoff)

        released = 0
        for booking_id in expired:
            try:
                outcome = await self._cancel(
                    booking_id,
                    HOLD_EXPIRED_REASON,
                    allowed_from=frozenset({BookingStatus.PENDING}),
                    now=now,
                )
            except (InvalidTransitionError, NotFoundError) as e:
                logger.info("hold_release_skipped", booking_id=booking_id, reason=e.code)
                continue
            if outcome.released:
                released += 1

        if released:
            holds_released.inc(released)
        logger.info("expired_holds_released", scanned=len(expired), released=released, cutoff=cutoff.isoformat())
        return released

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _cancel(
        self,
        booking_id: str,
        reason: Optional[str],
        allowed_from: frozenset,
        now: Optional[datetime] = None,
    ) -> CancelOutcome:
        try:
            async with self._uow.transaction() as tx:
                booking = await self._require_booking(tx, booking_id)
                if booking.status == BookingStatus.CANCELLED.value:
                    record_booking_operation("cancel", "noop")
                    booking = await tx.bookings.get(booking_id, with_related=True)
                    return CancelOutcome(booking, None, released=False)

                current = ensure_booking_transition(booking.status, BookingStatus.CANCELLED)
                if current not in allowed_from:
                    raise InvalidTransitionError("Booking", current.value, BookingStatus.CANCELLED.value)

                now = now or self._clock.now()
                held = await tx.slots.list_for_booking(booking_id)
                for slot in held:
                    await tx.slots.compare_and_swap_status(
                        slot.id,
                        SlotStatus.BOOKED,
                        SlotStatus.AVAILABLE,
                        booking_id=None,
                        expected_booking_id=booking_id,
                    )

                await tx.bookings.update_status(
                    booking_id,
                    current,
                    BookingStatus.CANCELLED,
                    cancelled_at=now,
                    cancellation_reason=reason,
                    updated_at=now,
                )

                intent = None
                payment = await tx.bookings.get_payment(booking_id)
                if payment is not None:
                    await tx.bookings.mark_refund_requested(payment.id, now)
                    intent = RefundIntent(
                        booking_id=booking_id,
                        payment_id=payment.id,
                        processor_id=payment.processor_id,
                        amount=payment.amount,
                        reason=reason,
                        requested_at=now,
                    )
                booking = await tx.bookings.get(booking_id, with_related=True)
        except StaleStateError:
            # A concurrent cancel may have won; that is the idempotent outcome
            current = await self.get_booking(booking_id)
            if current.status == BookingStatus.CANCELLED.value:
                record_booking_operation("cancel", "noop")
                return CancelOutcome(current, None, released=False)
            record_booking_operation("cancel", "conflict")
            await self._raise_lost_race(booking_id, BookingStatus.CANCELLED)
            raise
        except (InvalidTransitionError, NotFoundError):
            record_booking_operation("cancel", "rejected")
            raise

        record_booking_operation("cancel", "success")
        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            previous_status=current.value,
            reason=reason,
            slots_released=len(held),
            refund_requested=intent is not None,
        )
        return CancelOutcome(booking, intent, released=True)

    async def _emit_refund(self, intent: Optional[RefundIntent]) -> None:
        if intent is None:
            return
        try:
            await self._refund_sink.emit(intent)
        except Exception as e:
            # The cancellation is committed; the flag on the payment row still records the intent
            record_refund_intent(emitted=False)
            logger.error("refund_intent_emit_failed", booking_id=intent.booking_id, error=str(e))
            return
        record_refund_intent(emitted=True)

    async def _raise_lost_race(self, booking_id: str, target: BookingStatus) -> None:
        """Re-read after a lost status swap and raise the error matching the state that won."""
        booking = await self.get_booking(booking_id)
        ensure_booking_transition(booking.status, target)
        raise InvalidTransitionError(
            "Booking",
            booking.status,
            target.value,
            message=f"Booking {booking_id} changed concurrently, reload and retry",
        )

    async def _require_booking(self, tx: Transaction, booking_id: str, with_related: bool = False) -> Booking:
        booking = await tx.bookings.get(booking_id, with_related=with_related)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _validate_slot_request(self, slot_ids: list[str]) -> None:
        if not slot_ids:
            raise ValidationError("At least one slot is required")
        if len(set(slot_ids)) != len(slot_ids):
            raise ValidationError("Slot ids must be unique", details={"slot_ids": sorted(slot_ids)})
        if len(slot_ids) > self._max_slots:
            raise ValidationError(
                f"A booking may hold at most {self._max_slots} slots",
                details={"requested": len(slot_ids)},
            )

    @staticmethod
    def _validate_amounts(details: BookingDetailsInput, payment: PaymentInput) -> None:
        expected = details.unit_price * details.quantity + details.tax_total
        if details.grand_total != expected:
            raise InvalidAmountError(
                "grand_total must equal unit_price * quantity + tax_total",
                details={"grand_total": str(details.grand_total), "expected": str(expected)},
            )
        if payment.amount != details.grand_total:
            raise InvalidAmountError(
                "payment amount must equal grand_total",
                details={"amount": str(payment.amount), "grand_total": str(details.grand_total)},
            )
