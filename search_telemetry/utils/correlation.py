"""Search id correlation between a search request and later interaction events."""
import uuid
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

# Response header carrying the backend-assigned search id
SEARCH_ID_HEADER = "x-ms-azs-searchid"

# Request headers asking the search backend to return its search id
SEARCH_ID_REQUEST_HEADERS = {"x-ms-azs-return-searchid": "true"}


@dataclass(frozen=True)
class CorrelationId:
    """Search id for one logical search request.

    ``synthesized`` is True when the id was generated locally instead of
    being round-tripped from the search backend; such ids cannot be joined
    with backend-side metrics.
    """

    value: str
    synthesized: bool = False

    @property
    def is_well_formed(self) -> bool:
        try:
            uuid.UUID(self.value)
        except (ValueError, AttributeError, TypeError):
            return False
        return True

    def __str__(self) -> str:
        return self.value


class CorrelationIdProvider:
    """Obtains a search id, adopting the backend's or synthesizing one."""

    def __init__(self, uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4):
        self._uuid_factory = uuid_factory

    def obtain(self, search_response_header: Optional[str]) -> CorrelationId:
        """Adopt the header value verbatim, or generate a v4 UUID if absent."""
        if search_response_header is not None and search_response_header.strip():
            return CorrelationId(search_response_header.strip(), synthesized=False)
        return CorrelationId(str(self._uuid_factory()), synthesized=True)

    def obtain_from_headers(self, headers: Optional[Mapping[str, str]]) -> CorrelationId:
        """Look up the search id response header case-insensitively."""
        value = None
        for key, header_value in (headers or {}).items():
            if key.lower() == SEARCH_ID_HEADER:
                value = header_value
                break
        return self.obtain(value)
