from urllib.parse import quote

from django.utils import dateformat, timezone

WHATSAPP_BASE_URL = "https://wa.me"


def format_booking_date(value) -> str:
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return dateformat.format(value, "j M Y")


def format_booking_message(booking, branch_whatsapp_number: str = "", is_cancellation: bool = False) -> str:
    """Build the customer-facing confirmation or cancellation text for a booking.

    ``branch_whatsapp_number`` is accepted so callers can pass the sending
    branch through; the message body itself does not include it.
    """
    when = format_booking_date(booking.date)
    service = booking.service_display
    message = f"Hi {booking.name},\n\n"

    if is_cancellation:
        message += f"We regret to inform you that your appointment for {service}"
        message += f" on {when} at {booking.branch} has been cancelled.\n\n"
        message += "Please contact us if you'd like to reschedule.\n\n"
        message += "We apologize for any inconvenience."
    else:
        message += f"Your appointment for {service}"
        message += f" on {when} at {booking.branch} is confirmed!\n\n"
        if booking.expert:
            message += f"Expert: {booking.expert}\n"
        message += "\nWe look forward to seeing you!"

    return message


def whatsapp_link(phone_number: str, message: str) -> str:
    # same escaping as JavaScript's encodeURIComponent
    encoded = quote(message, safe="!~*'()")
    return f"{WHATSAPP_BASE_URL}/{phone_number}?text={encoded}"
