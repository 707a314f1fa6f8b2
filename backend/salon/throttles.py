from rest_framework.throttling import SimpleRateThrottle


class ClientRateThrottle(SimpleRateThrottle):
    """Count requests per admin account, or per client address for the public site."""

    def get_cache_key(self, request, view):
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            ident = f"user-{user.pk}"
        else:
            ident = f"addr-{self.get_ident(request)}"
        return self.cache_format % {"scope": self.scope, "ident": ident}


class BookingRateThrottle(ClientRateThrottle):
    scope = "bookings"


class CouponRateThrottle(ClientRateThrottle):
    scope = "coupons"


class ReportsRateThrottle(ClientRateThrottle):
    scope = "reports"
