"""Services for the asset action kernel (act on a caller-owned session)."""

from dam_kernel.services.retry import always_transient, retry, retry_all

__all__ = [
    "always_transient",
    "retry",
    "retry_all",
]
