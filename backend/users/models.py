from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Custom user model so AUTH_USER_MODEL points to a concrete class."""

    def __str__(self) -> str:
        return self.get_username()

    @property
    def is_salon_admin(self) -> bool:
        return self.is_active and (self.is_staff or self.is_superuser)
