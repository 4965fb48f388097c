"""Provider adapter interface consumed by the shared request engine.

The engine never inspects provider payloads directly. An adapter tells it
how to authenticate a request, how to recognise success, and how to pull
error details out of a failed response.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from collectors.backoff import parse_retry_after_ms
from collectors.errors import ClassifiedError, ErrorCodeSets, ErrorDetails, classify_error


@dataclass(frozen=True)
class ApiRequest:
    """A single HTTP request description, minus auth headers.

    Attributes:
        method: HTTP method.
        url: Absolute URL (may include a pre-encoded query string).
        params: Query parameters encoded by httpx.
        json: JSON body.
    """

    method: str
    url: str
    params: Optional[dict] = None
    json: Optional[dict] = None


class ProviderAdapter(ABC):
    """Strategy object supplying provider-specific request knowledge."""

    provider_id: str = ""
    code_sets: ErrorCodeSets = ErrorCodeSets()

    @abstractmethod
    def build_headers(self, access_token: str) -> dict[str, str]:
        """Return request headers carrying ``access_token``."""

    @abstractmethod
    def extract_error(self, payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
        """Pull code, message and request id out of a failed response."""

    def is_success(self, http_status: int, payload: Any) -> bool:
        """Return True when the response is a provider-level success."""
        return 200 <= http_status < 300

    def classify(
        self, http_status: int, payload: Any, headers: Mapping[str, str]
    ) -> ClassifiedError:
        return classify_error(
            self.provider_id,
            http_status,
            payload,
            headers,
            self.code_sets,
            self.extract_error,
            retry_after_ms=parse_retry_after_ms(headers),
        )
