"""hdtree exceptions hierarchy."""

from typing import Any, Optional

__all__ = [
    "HDTreeError",
    "ValidationError",
    "KeyFormatNotFound",
    "InvalidKey",
    "InvalidPath",
    "UnknownNetworkError",
    "DerivationError",
    "InvalidKeyForIndex",
    "PrivatePublicMismatch",
    "PublicDerivationFailure",
    "KeyImportError",
    "SeedGenerationError",
    "RNGFailure",
    "LengthFailure",
    "ValidityError",
    "SeedImportError",
    "TooManyAttempts",
]


class HDTreeError(Exception):
    """Base exception for all hdtree errors."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[Any] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ValidationError(HDTreeError):
    """Raised when input validation fails."""
    pass


class KeyFormatNotFound(ValidationError):
    """Raised when key bytes or hex cannot be parsed."""
    pass


class InvalidKey(ValidationError):
    """Raised when a private scalar is outside [1, n-1]."""
    pass


class InvalidPath(ValidationError):
    """Raised when a derivation path cannot be parsed."""
    pass


class UnknownNetworkError(ValidationError):
    """Raised when a network identifier is not known."""
    pass


class DerivationError(HDTreeError):
    """Raised when child key derivation fails."""
    pass


class InvalidKeyForIndex(DerivationError):
    """
    Raised when a specific index yields no valid child.

    Happens when IL >= n, the child scalar is zero, or the child point is
    the point at infinity. Callers are expected to move on to the next index.
    """

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Invalid key for index {index}: {reason}", data=index)
        self.index = index
        self.reason = reason


class PrivatePublicMismatch(DerivationError):
    """Raised when a private-only operation is requested on a public node."""
    pass


class PublicDerivationFailure(PrivatePublicMismatch):
    """Raised when hardened derivation is attempted without a private key."""
    pass


class KeyImportError(HDTreeError):
    """Raised when imported key material is structurally inconsistent."""
    pass


class SeedGenerationError(HDTreeError):
    """Base class for master seed failures."""
    pass


class RNGFailure(SeedGenerationError):
    """Raised when the random source fails or returns short reads."""
    pass


class LengthFailure(SeedGenerationError):
    """Raised when a seed or seed hash has the wrong length."""
    pass


class ValidityError(SeedGenerationError):
    """Raised when a seed hash does not give a usable master key."""
    pass


class SeedImportError(SeedGenerationError):
    """Raised when a caller-supplied seed cannot produce a master key."""
    pass


class TooManyAttempts(SeedGenerationError):
    """Raised when random generation keeps failing past the retry ceiling."""

    def __init__(self, attempts: int, message: Optional[str] = None) -> None:
        if message is None:
            message = f"Gave up after {attempts} attempts"
        super().__init__(message, data=attempts)
        self.attempts = attempts
