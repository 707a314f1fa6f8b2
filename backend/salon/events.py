import logging
from concurrent.futures import ThreadPoolExecutor

from django.db import close_old_connections, transaction
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent with ``booking=<Booking>`` once the booking row is committed.
booking_created = Signal()

# Listeners run here, never on the request thread.
_dispatcher = ThreadPoolExecutor(max_workers=2, thread_name_prefix="booking-events")


def _send(booking) -> None:
    try:
        responses = booking_created.send_robust(sender=type(booking), booking=booking)
        for listener, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "booking_created listener %r failed for booking %s: %s",
                    listener,
                    booking.pk,
                    response,
                    exc_info=response,
                )
    finally:
        close_old_connections()


def publish_booking_created(booking) -> None:
    """Fan the new booking out to listeners after commit, off the request path.

    Listener errors are only logged; slow listeners do not hold up the caller.
    """
    transaction.on_commit(lambda: _dispatcher.submit(_send, booking))


@receiver(booking_created)
def log_new_booking(sender, booking, **kwargs):
    logger.info(
        "New booking %s: %s at %s on %s",
        booking.pk,
        booking.service,
        booking.branch,
        booking.date.isoformat() if booking.date else None,
    )
