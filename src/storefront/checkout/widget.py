"""Embedded payment widget adapter.

Payment widgets report back through an ``on_success`` / ``on_close`` callback
pair. :func:`run_widget` turns that into a single awaitable outcome that
resolves at most once: whichever callback fires first wins and later calls
are ignored.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentSucceeded:
    reference: str = ""
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentCancelled:
    pass


@dataclass(frozen=True)
class PaymentFailed:
    error: str


PaymentOutcome = Union[PaymentSucceeded, PaymentCancelled, PaymentFailed]


class PaymentWidget(Protocol):
    """Anything that opens a payment dialog and reports via callbacks."""

    def open(
        self,
        *,
        email: str,
        amount: int,
        first_name: str,
        last_name: str,
        on_success: Callable[[dict[str, Any]], None],
        on_close: Callable[[], None],
    ) -> Any:
        ...


async def run_widget(
    widget: PaymentWidget,
    *,
    email: str,
    amount: int,
    first_name: str,
    last_name: str,
) -> PaymentOutcome:
    """Open ``widget`` and wait for its first callback.

    ``amount`` is in minor currency units. An exception raised while opening
    the widget becomes :class:`PaymentFailed`.
    """
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future = loop.create_future()

    def resolve(result: PaymentOutcome) -> None:
        if outcome.done():
            logger.debug("Ignoring late widget callback: %r", result)
            return
        outcome.set_result(result)

    def on_success(response: dict[str, Any]) -> None:
        response = response or {}
        reference = str(response.get("reference", response.get("id", "")))
        loop.call_soon_threadsafe(resolve, PaymentSucceeded(reference=reference, payload=response))

    def on_close() -> None:
        loop.call_soon_threadsafe(resolve, PaymentCancelled())

    try:
        opened = widget.open(
            email=email,
            amount=amount,
            first_name=first_name,
            last_name=last_name,
            on_success=on_success,
            on_close=on_close,
        )
        if asyncio.iscoroutine(opened):
            await opened
    except Exception as e:
        logger.error("Payment widget failed to open: %s", e)
        resolve(PaymentFailed(error=str(e) or type(e).__name__))

    return await outcome
