"""
Manual swap lifecycle coordinator.

Drives one swap per identity from parameter collection through awaiting
funds to a terminal exchange status. External calls are made outside the
store lock; every write after such a call re-checks that the session it
started from is still the current one.
"""

from datetime import datetime
from functools import partial
from typing import Callable, Optional

import structlog

from ..config.defaults import CancellationParams, PollingParams
from ..errors import ExchangeError, InvalidRequestError, SessionNotFoundError
from ..exchange.base import ExchangeClient
from ..logging.config import get_state_logger, log_state_transition
from ..models.exchange import Quote, ShiftOrder
from ..models.session import (
    QUOTE_BOUND_STATES,
    TERMINAL_STATUSES,
    CancelOutcome,
    Session,
    SwapState,
)
from ..notify import messages
from ..notify.dispatcher import Notifier
from ..notify.messages import NotificationEvent
from ..scheduling.base import BaseTaskScheduler
from ..utils.time import seconds_until, time_elapsed_seconds, utc_now
from .session_store import ConversationStore
from .transitions import STATUS_TO_TERMINAL_STATE, require_state, validate_transition

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


class SwapLifecycleMachine:
    """Coordinates quote, order creation, status polling and cancellation."""

    def __init__(
        self,
        store: ConversationStore,
        exchange: ExchangeClient,
        scheduler: BaseTaskScheduler,
        notifier: Notifier,
        polling: Optional[PollingParams] = None,
        cancellation: Optional[CancellationParams] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.exchange = exchange
        self.scheduler = scheduler
        self.notifier = notifier
        self.polling = polling or PollingParams()
        self.cancellation = cancellation or CancellationParams()
        self.clock = clock
        self.logger = logger

    def start(self, identity: str) -> Session:
        session = self.store.start_swap_flow(identity)
        log_state_transition(state_logger, identity, "none", session.state.value, "start")
        return session

    def set_parameters(
        self,
        identity: str,
        from_coin: str,
        to_coin: str,
        amount: str,
        from_network: Optional[str] = None,
        to_network: Optional[str] = None,
    ) -> Session:
        if not from_coin or not to_coin:
            raise InvalidRequestError("Both coins are required", field="coin")
        _require_positive_amount(amount)

        with self.store.lock:
            session = self._require_session(identity)
            require_state(session.state, SwapState.COLLECTING_PARAMETERS, "set parameters", identity)
            updated = self.store.update_session(
                identity,
                from_coin=from_coin.lower(),
                to_coin=to_coin.lower(),
                amount=str(amount),
                from_network=from_network,
                to_network=to_network,
            )

        self.logger.debug("Swap parameters set", owner=identity, from_coin=from_coin, to_coin=to_coin)
        return updated

    def request_quote(self, identity: str) -> Quote:
        """Quote the collected parameters and arm the quote-expiry timer."""
        session = self._require_session(identity)
        require_state(session.state, SwapState.COLLECTING_PARAMETERS, "request a quote", identity)
        details = session.details
        if not details.has_parameters:
            raise InvalidRequestError("Coins and amount must be set before quoting", field="amount")

        try:
            quote = self.exchange.request_quote(
                details.from_coin,
                details.to_coin,
                details.amount,
                from_network=details.from_network,
                to_network=details.to_network,
            )
        except ExchangeError as e:
            self._abort(identity, session, "get a quote", e)
            raise

        with self.store.lock:
            current = self._require_same_session(identity, session)
            validate_transition(current.state, SwapState.AWAITING_CONFIRMATION, identity)

            remaining = max(seconds_until(quote.expires_at, self.clock()), 0.0)
            token = self.scheduler.after(
                remaining,
                partial(self._on_quote_expired, identity, quote.id),
                name=f"quote-expiry:{identity}",
            )
            self.store.update_session(
                identity,
                state=SwapState.AWAITING_CONFIRMATION,
                quote_timer_token=token,
                quote_id=quote.id,
                quote_expires_at=quote.expires_at,
                quoted_rate=quote.rate,
                settle_amount=quote.settle_amount,
                deposit_amount=quote.deposit_amount,
                from_network=quote.from_network,
                to_network=quote.to_network,
            )

        log_state_transition(
            state_logger, identity,
            current.state.value, SwapState.AWAITING_CONFIRMATION.value,
            "quote_received",
            {"quote_id": quote.id, "expires_in_seconds": round(remaining, 1)},
        )
        return quote

    def confirm(self, identity: str) -> Session:
        with self.store.lock:
            session = self._require_session(identity)
            require_state(session.state, SwapState.AWAITING_CONFIRMATION, "confirm", identity)

            expires_at = session.details.quote_expires_at
            expired = expires_at is not None and seconds_until(expires_at, self.clock()) <= 0
            if expired:
                self.store.clear_session(identity)
            else:
                validate_transition(session.state, SwapState.AWAITING_DESTINATION_ADDRESS, identity)
                updated = self.store.update_session(identity, state=SwapState.AWAITING_DESTINATION_ADDRESS)

        if expired:
            self._report_quote_expired(identity, session)
            raise InvalidRequestError("Quote has expired", field="quote_id", value=session.details.quote_id)

        log_state_transition(
            state_logger, identity,
            session.state.value, SwapState.AWAITING_DESTINATION_ADDRESS.value,
            "confirmed",
        )
        return updated

    def submit_addresses(
        self,
        identity: str,
        destination_address: str,
        refund_address: Optional[str] = None,
    ) -> ShiftOrder:
        """Create the external order and start polling its status."""
        if not destination_address:
            raise InvalidRequestError("Destination address is required", field="destination_address")

        with self.store.lock:
            session = self._require_session(identity)
            require_state(session.state, SwapState.AWAITING_DESTINATION_ADDRESS, "submit addresses", identity)
            # Disarm before the external call so expiry cannot race order creation
            if session.quote_timer_token:
                self.scheduler.cancel(session.quote_timer_token)
            session = self.store.update_session(identity, quote_timer_token=None)

        quote_id = session.details.quote_id
        try:
            order = self.exchange.create_order(quote_id, destination_address, refund_address=refund_address)
        except ExchangeError as e:
            self._abort(identity, session, "create your order", e)
            raise

        with self.store.lock:
            current = self.store.get_session(identity)
            if current is None or current.flow_id != session.flow_id or current.has_external_order:
                self.logger.warning(
                    "Session changed while creating order",
                    owner=identity,
                    shift_id=order.id,
                    quote_id=quote_id,
                )
                return order

            validate_transition(current.state, SwapState.AWAITING_FUNDS, identity)
            poll_token = self.scheduler.every(
                self.polling.status_interval_seconds,
                partial(self.poll_status, identity),
                name=f"status-poll:{identity}",
            )
            self.store.update_session(
                identity,
                state=SwapState.AWAITING_FUNDS,
                shift_id=order.id,
                last_status=order.status,
                order_created_at=self.clock(),
                poll_token=poll_token,
                destination_address=destination_address,
                refund_address=refund_address,
                deposit_address=order.deposit_address,
                deposit_amount=order.deposit_amount,
            )

        log_state_transition(
            state_logger, identity,
            current.state.value, SwapState.AWAITING_FUNDS.value,
            "order_created",
            {"shift_id": order.id, "quote_id": quote_id},
        )
        self.notifier.notify(
            identity,
            messages.deposit_instructions(order.deposit_instructions(), order.expires_at),
            data=order.deposit_instructions(),
            event=NotificationEvent.DEPOSIT_INSTRUCTIONS,
        )
        return order

    def poll_status(self, identity: str) -> Optional[str]:
        """
        One status polling tick.

        Returns the status observed, or None when there was nothing to poll
        or the poll failed. Only a change of status notifies the owner.
        """
        session = self.store.get_session(identity)
        if session is None or session.state != SwapState.AWAITING_FUNDS or not session.shift_id:
            self.logger.debug("Poll tick without a live order", owner=identity)
            return None

        shift_id = session.shift_id
        try:
            report = self.exchange.poll_order_status(shift_id)
        except ExchangeError as e:
            self.logger.warning("Status poll failed; retrying next tick", owner=identity, shift_id=shift_id, error=str(e))
            return None

        status = report.status
        with self.store.lock:
            current = self.store.get_session(identity)
            if current is None or current.shift_id != shift_id or current.state != SwapState.AWAITING_FUNDS:
                self.logger.debug("Stale poll result ignored", owner=identity, shift_id=shift_id)
                return None

            if status == current.last_status:
                return status

            terminal = status in TERMINAL_STATUSES
            if terminal:
                final_state = STATUS_TO_TERMINAL_STATE[status]
                validate_transition(current.state, final_state, identity)
                if current.pending_cancel_token:
                    self.scheduler.cancel(current.pending_cancel_token)
                self.store.clear_session(identity)
            else:
                self.store.update_session(identity, last_status=status)

        if terminal:
            log_state_transition(
                state_logger, identity,
                SwapState.AWAITING_FUNDS.value, final_state.value,
                "status_poll",
                {"shift_id": shift_id},
            )
            self.notifier.notify(
                identity,
                messages.swap_finished(shift_id, status),
                data={"shift_id": shift_id, "status": status, "settle_hash": report.settle_hash},
                event=NotificationEvent.SWAP_FINISHED,
            )
        else:
            self.logger.info("Shift status changed", owner=identity, shift_id=shift_id, status=status)
            self.notifier.notify(
                identity,
                messages.status_changed(shift_id, status),
                data={"shift_id": shift_id, "status": status},
                event=NotificationEvent.STATUS_CHANGED,
            )
        return status

    def cancel(self, identity: str) -> CancelOutcome:
        """
        Cancel the identity's swap.

        No external order: the session is discarded without external calls.
        Order younger than the minimum age: polling stops and a delayed cancel
        is scheduled. Otherwise the order is cancelled immediately.
        """
        with self.store.lock:
            session = self.store.get_session(identity)
            if session is None or session.is_terminal:
                return CancelOutcome.NO_SESSION

            if not session.has_external_order:
                self.store.clear_session(identity)
                outcome = CancelOutcome.DISCARDED
            elif session.cancel_scheduled:
                return CancelOutcome.SCHEDULED
            else:
                if session.poll_token:
                    self.scheduler.cancel(session.poll_token)

                age = time_elapsed_seconds(session.order_created_at, self.clock())
                remaining = self.cancellation.min_order_age_seconds - age
                if remaining > 0:
                    token = self.scheduler.after(
                        remaining,
                        partial(self._on_delayed_cancel, identity, session.shift_id),
                        name=f"delayed-cancel:{identity}",
                    )
                    self.store.update_session(identity, poll_token=None, pending_cancel_token=token)
                    outcome = CancelOutcome.SCHEDULED
                else:
                    self.store.update_session(identity, poll_token=None)
                    outcome = None

        if outcome == CancelOutcome.DISCARDED:
            self.logger.info("Pending swap discarded", owner=identity, state=session.state.value)
            self.notifier.notify(identity, messages.discarded(), event=NotificationEvent.CANCELLED)
            return outcome

        if outcome == CancelOutcome.SCHEDULED:
            self.logger.info(
                "Cancellation scheduled",
                owner=identity,
                shift_id=session.shift_id,
                delay_seconds=round(remaining, 1),
            )
            self.notifier.notify(
                identity,
                messages.cancel_scheduled(remaining),
                data={"shift_id": session.shift_id, "delay_seconds": remaining},
                event=NotificationEvent.CANCEL_SCHEDULED,
            )
            return outcome

        return self._cancel_order(identity, session.shift_id)

    def _cancel_order(self, identity: str, shift_id: str) -> CancelOutcome:
        try:
            self.exchange.cancel_order(shift_id)
        except ExchangeError as e:
            self.logger.warning("External cancel failed", owner=identity, shift_id=shift_id, error=str(e))
            self._clear_if_current(identity, shift_id)
            self.notifier.notify(
                identity,
                messages.cancel_failed(str(e)),
                data={"shift_id": shift_id},
                event=NotificationEvent.CANCEL_FAILED,
            )
            return CancelOutcome.CANCEL_FAILED

        self._clear_if_current(identity, shift_id)
        self.logger.info("Order cancelled", owner=identity, shift_id=shift_id)
        self.notifier.notify(
            identity,
            messages.cancelled(),
            data={"shift_id": shift_id},
            event=NotificationEvent.CANCELLED,
        )
        return CancelOutcome.CANCELLED

    def _on_delayed_cancel(self, identity: str, shift_id: str) -> None:
        """Scheduled cancel; a no-op unless the session still holds shift_id."""
        session = self.store.get_session(identity)
        if session is None or session.shift_id != shift_id:
            self.logger.debug("Delayed cancel skipped for superseded session", owner=identity, shift_id=shift_id)
            return
        self._cancel_order(identity, shift_id)

    def _on_quote_expired(self, identity: str, quote_id: str) -> None:
        """Quote-expiry timer callback."""
        with self.store.lock:
            session = self.store.get_session(identity)
            if (
                session is None
                or session.state not in QUOTE_BOUND_STATES
                or session.details.quote_id != quote_id
            ):
                self.logger.debug("Quote expiry ignored", owner=identity, quote_id=quote_id)
                return
            self.store.clear_session(identity)

        self._report_quote_expired(identity, session)

    def _report_quote_expired(self, identity: str, session: Session) -> None:
        self.logger.info(
            "Quote expired; session aborted",
            owner=identity,
            quote_id=session.details.quote_id,
            state=session.state.value,
        )
        self.notifier.notify(
            identity,
            messages.quote_expired(),
            data={"quote_id": session.details.quote_id},
            event=NotificationEvent.QUOTE_EXPIRED,
        )

    def _abort(self, identity: str, session: Session, stage: str, error: ExchangeError) -> None:
        """Quote or order creation failed: clear the session and tell the owner."""
        with self.store.lock:
            current = self.store.get_session(identity)
            if current is not None and current.flow_id == session.flow_id:
                self.store.clear_session(identity)

        self.logger.warning(
            "Swap flow aborted",
            owner=identity,
            stage=stage,
            error=str(error),
            status_code=error.status_code,
        )
        self.notifier.notify(
            identity,
            messages.swap_error(stage, str(error)),
            data={"stage": stage, "status_code": error.status_code},
            event=NotificationEvent.SWAP_ERROR,
        )

    def _clear_if_current(self, identity: str, shift_id: str) -> None:
        with self.store.lock:
            current = self.store.get_session(identity)
            if current is not None and current.shift_id == shift_id:
                self.store.clear_session(identity)

    def _require_session(self, identity: str) -> Session:
        session = self.store.get_session(identity)
        if session is None:
            raise SessionNotFoundError(f"No swap in progress for {identity}", identity=identity)
        return session

    def _require_same_session(self, identity: str, session: Session) -> Session:
        current = self.store.get_session(identity)
        if current is None or current.flow_id != session.flow_id:
            raise SessionNotFoundError(
                f"Swap session for {identity} was replaced or cancelled",
                identity=identity,
            )
        return current


def _require_positive_amount(amount: str) -> None:
    try:
        value = float(amount)
    except (TypeError, ValueError) as e:
        raise InvalidRequestError("Amount must be a number", field="amount", value=amount) from e
    if value <= 0:
        raise InvalidRequestError("Amount must be positive", field="amount", value=amount)
