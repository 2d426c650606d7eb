"""
Typed exception hierarchy for the asset action kernel.

Every error has a typed class, a machine-readable ``code`` class attribute,
and carries its context as attributes rather than only in the message, so
hosts can do per-item failure accounting without parsing strings.

    DamKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidRetryPolicyError
    |   +-- EmptyDistributionError
    |
    +-- AssetError
        +-- AssetNotFoundError

Errors raised by a retry-wrapped action are NOT wrapped: once the retry
budget is exhausted the last error propagates unmodified, so callers catch
the collaborator's own exception type.

Code reference:

Category        | Code                  | When Raised
----------------|-----------------------|------------------------------------------
Configuration   | INVALID_RETRY_POLICY  | max_attempts < 1 or negative delay
                | EMPTY_DISTRIBUTION    | RoundRobin built from an empty sequence
----------------|-----------------------|------------------------------------------
Asset           | ASSET_NOT_FOUND       | Catalog action on a path that is not an asset
"""


class DamKernelError(Exception):
    """
    Base exception for all asset action kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "DAM_KERNEL_ERROR"


# Configuration-related exceptions


class ConfigurationError(DamKernelError):
    """Base exception for invalid action configuration."""

    code: str = "CONFIGURATION_ERROR"


class InvalidRetryPolicyError(ConfigurationError):
    """Retry policy values are out of range."""

    code: str = "INVALID_RETRY_POLICY"

    def __init__(self, max_attempts: int, delay_seconds: float):
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        super().__init__(
            f"Invalid retry policy: max_attempts={max_attempts} "
            f"(must be >= 1), delay_seconds={delay_seconds} (must be >= 0)"
        )


class EmptyDistributionError(ConfigurationError):
    """Round-robin distribution requested over no values."""

    code: str = "EMPTY_DISTRIBUTION"

    def __init__(self, purpose: str = "round robin"):
        self.purpose = purpose
        super().__init__(f"Cannot distribute {purpose} over an empty list of values")


# Asset-related exceptions


class AssetError(DamKernelError):
    """Base exception for asset-related errors."""

    code: str = "ASSET_ERROR"


class AssetNotFoundError(AssetError):
    """Path does not resolve to an asset."""

    code: str = "ASSET_NOT_FOUND"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No asset found at {path}")
