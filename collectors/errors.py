"""Classified provider API errors.

Every failed provider call is turned into exactly one ClassifiedError by
classify_error(). The subclass encodes the recovery policy:

- AuthError: expired/invalid/revoked credential or permission denial.
  Never retried beyond the single token refresh.
- RateLimitError: quota or QPS exceeded. Retried with mandatory backoff.
- TransientError: 5xx or provider-declared internal errors. Retried up
  to the retry budget.
- FatalError: malformed request, missing resource, unclassified 4xx.
  Never retried.

Network-level failures (DNS, connection reset) are not classified: no
response existed, so the raw httpx.TransportError propagates instead.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

ErrorCode = Union[str, int]


@dataclass(frozen=True)
class ErrorCodeSets:
    """Static provider code sets used to classify an error payload.

    Codes are compared by their string form, so ``40003`` and ``"40003"``
    match the same entry.
    """

    auth: frozenset = field(default_factory=frozenset)
    rate_limit: frozenset = field(default_factory=frozenset)
    transient: frozenset = field(default_factory=frozenset)

    def _contains(self, codes: frozenset, code: Optional[ErrorCode]) -> bool:
        if code is None:
            return False
        return str(code) in {str(c) for c in codes}

    def is_auth(self, code: Optional[ErrorCode]) -> bool:
        return self._contains(self.auth, code)

    def is_rate_limit(self, code: Optional[ErrorCode]) -> bool:
        return self._contains(self.rate_limit, code)

    def is_transient(self, code: Optional[ErrorCode]) -> bool:
        return self._contains(self.transient, code)


@dataclass(frozen=True)
class ErrorDetails:
    """Provider-specific fields pulled out of a failed response body."""

    code: Optional[ErrorCode] = None
    message: Optional[str] = None
    request_id: Optional[str] = None
    retry_after_ms: Optional[int] = None
    http_status: Optional[int] = None


class ClassifiedError(Exception):
    """A failed provider call enriched with auth/rate-limit/retry flags.

    Attributes:
        provider: Provider identifier ("google", "tiktok", "linkedin").
        http_status: Transport-level HTTP status.
        provider_error_code: Provider-native code, if any.
        request_id: Provider trace id for support tickets.
        is_auth_error: Credential or permission failure.
        is_rate_limit_error: Quota or QPS failure.
        is_retryable: Whether the engine may retry the request.
        retry_after_ms: Provider retry hint in milliseconds.
    """

    _READ_ONLY = frozenset(
        {
            "provider",
            "http_status",
            "provider_error_code",
            "request_id",
            "is_auth_error",
            "is_rate_limit_error",
            "is_retryable",
            "retry_after_ms",
        }
    )

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        http_status: int,
        provider_error_code: Optional[ErrorCode] = None,
        request_id: Optional[str] = None,
        is_auth_error: bool = False,
        is_rate_limit_error: bool = False,
        is_retryable: bool = False,
        retry_after_ms: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.http_status = http_status
        self.provider_error_code = provider_error_code
        self.request_id = request_id
        self.is_auth_error = is_auth_error
        self.is_rate_limit_error = is_rate_limit_error
        self.is_retryable = is_retryable
        self.retry_after_ms = retry_after_ms
        self._sealed = True

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._READ_ONLY and getattr(self, "_sealed", False):
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    @property
    def message(self) -> str:
        return str(self)

    @property
    def category(self) -> str:
        """Short classification label: auth, rate_limit, transient or fatal."""
        if self.is_auth_error:
            return "auth"
        if self.is_rate_limit_error:
            return "rate_limit"
        if self.is_retryable:
            return "transient"
        return "fatal"

    def to_dict(self) -> dict:
        """Return a JSON-safe view for logs and API responses."""
        return {
            "provider": self.provider,
            "category": self.category,
            "message": self.message,
            "http_status": self.http_status,
            "provider_error_code": self.provider_error_code,
            "request_id": self.request_id,
            "is_auth_error": self.is_auth_error,
            "is_rate_limit_error": self.is_rate_limit_error,
            "is_retryable": self.is_retryable,
            "retry_after_ms": self.retry_after_ms,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(provider={self.provider!r}, "
            f"http_status={self.http_status}, "
            f"provider_error_code={self.provider_error_code!r}, "
            f"message={self.message!r})"
        )


class AuthError(ClassifiedError):
    """Expired, invalid or revoked credential, or permission denial."""

    pass


class RateLimitError(ClassifiedError):
    """Provider quota or QPS limit exceeded."""

    pass


class TransientError(ClassifiedError):
    """Server-side or provider-declared transient failure."""

    pass


class FatalError(ClassifiedError):
    """Non-retryable failure (bad request, not found, unclassified 4xx)."""

    pass


ErrorExtractor = Callable[[Any, Mapping[str, str]], ErrorDetails]


def _error_class(is_auth: bool, is_rate_limit: bool, is_retryable: bool) -> type:
    if is_auth:
        return AuthError
    if is_rate_limit:
        return RateLimitError
    if is_retryable:
        return TransientError
    return FatalError


def classify_error(
    provider: str,
    http_status: int,
    payload: Any,
    headers: Mapping[str, str],
    code_sets: ErrorCodeSets,
    extract: ErrorExtractor,
    retry_after_ms: Optional[int] = None,
) -> ClassifiedError:
    """Classify a failed provider response.

    Pure function of its inputs. ``payload`` is the parsed JSON body, or the
    raw text when the body was not JSON. ``extract`` pulls the provider
    code, message and request id out of the payload.

    Args:
        provider: Provider identifier used in messages.
        http_status: HTTP status of the response.
        payload: Parsed error body or raw text.
        headers: Response headers.
        code_sets: Provider auth / rate-limit / transient code sets.
        extract: Provider-specific error detail extractor.
        retry_after_ms: Retry hint already parsed from headers.

    Returns:
        The ClassifiedError subclass matching the failure.
    """
    details = extract(payload, headers)
    code = details.code

    # Some providers echo the status inside the body; the body wins when the
    # transport reported success (TikTok returns HTTP 200 for logical errors).
    status = http_status
    if details.http_status and 200 <= http_status < 300 and details.http_status >= 400:
        status = details.http_status

    is_auth = status in (401, 403) or code_sets.is_auth(code)
    is_rate_limit = status == 429 or code_sets.is_rate_limit(code)
    is_retryable = (
        is_rate_limit or 500 <= status < 600 or code_sets.is_transient(code)
    )
    # Retrying without a new credential cannot succeed.
    if is_auth:
        is_retryable = False

    hint = details.retry_after_ms if details.retry_after_ms else retry_after_ms
    message = details.message or f"{provider} API error ({http_status})"

    error_class = _error_class(is_auth, is_rate_limit, is_retryable)
    return error_class(
        message,
        provider=provider,
        http_status=http_status,
        provider_error_code=code,
        request_id=details.request_id,
        is_auth_error=is_auth,
        is_rate_limit_error=is_rate_limit,
        is_retryable=is_retryable,
        retry_after_ms=hint if hint and hint > 0 else None,
    )
