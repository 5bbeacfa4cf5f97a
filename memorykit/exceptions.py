"""
Exception classes for the MemoryKit client.

Every terminal failure is raised as a ``MemoryKitError``. The ``kind``
attribute says which stage failed and the boolean properties answer the
usual remediation questions (auth, rate limiting, validation, ...).
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminant for ``MemoryKitError``."""

    REQUEST_FAILED = "request_failed"
    NETWORK = "network"
    DECODING = "decoding"
    ENCODING = "encoding"
    INVALID_URL = "invalid_url"
    STREAM = "stream"


class MemoryKitError(Exception):
    """Base (and only) exception raised by the MemoryKit client.

    Use the classmethod constructors rather than calling ``__init__``
    directly; they fill in the fields that belong to each kind.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        retry_after: float | None = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.code = code
        self.retry_after = retry_after
        super().__init__(self._describe())

    @classmethod
    def request_failed(
        cls,
        status_code: int,
        message: str,
        code: str | None = None,
        retry_after: float | None = None,
    ) -> "MemoryKitError":
        return cls(
            ErrorKind.REQUEST_FAILED,
            message,
            status_code=status_code,
            code=code,
            retry_after=retry_after,
        )

    @classmethod
    def network(cls, error: BaseException) -> "MemoryKitError":
        return cls(ErrorKind.NETWORK, _error_text(error))

    @classmethod
    def decoding(cls, error: BaseException | str) -> "MemoryKitError":
        return cls(ErrorKind.DECODING, _error_text(error))

    @classmethod
    def encoding(cls, error: BaseException | str) -> "MemoryKitError":
        return cls(ErrorKind.ENCODING, _error_text(error))

    @classmethod
    def invalid_url(cls, url: str) -> "MemoryKitError":
        return cls(ErrorKind.INVALID_URL, url)

    @classmethod
    def stream(cls, message: str) -> "MemoryKitError":
        return cls(ErrorKind.STREAM, message)

    def _describe(self) -> str:
        if self.kind is ErrorKind.REQUEST_FAILED:
            if self.code:
                return (
                    f"MemoryKit API error {self.status_code} ({self.code}): "
                    f"{self.message}"
                )
            return f"MemoryKit API error {self.status_code}: {self.message}"
        prefix = {
            ErrorKind.NETWORK: "network error",
            ErrorKind.DECODING: "decoding error",
            ErrorKind.ENCODING: "encoding error",
            ErrorKind.INVALID_URL: "invalid URL",
            ErrorKind.STREAM: "stream error",
        }[self.kind]
        return f"MemoryKit {prefix}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"MemoryKitError(kind={self.kind.value!r}, status_code={self.status_code!r}, "
            f"code={self.code!r}, message={self.message!r})"
        )

    # === Derived predicates ===

    @property
    def is_auth_error(self) -> bool:
        """Whether this is an authentication error (401)."""
        return self.status_code == 401

    @property
    def is_rate_limited(self) -> bool:
        """Whether the request was rate limited (429)."""
        return self.status_code == 429

    @property
    def is_server_error(self) -> bool:
        """Whether this is a server error (5xx)."""
        return self.status_code is not None and 500 <= self.status_code < 600

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_validation_error(self) -> bool:
        """Whether the server rejected the request as invalid (400 or 422)."""
        return self.status_code in (400, 422)

    @property
    def is_retryable(self) -> bool:
        """Whether another attempt could succeed.

        True for transport failures and for 429/5xx responses. Decoding,
        encoding, URL and stream failures are never retryable.
        """
        if self.kind is ErrorKind.NETWORK:
            return True
        return self.is_rate_limited or self.is_server_error


def _error_text(error: Any) -> str:
    if isinstance(error, BaseException):
        text = str(error)
        return text or type(error).__name__
    return str(error)
