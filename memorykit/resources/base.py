from urllib.parse import quote

from ..exceptions import MemoryKitError
from ..http import HTTPClient


def encode_path(*segments: str) -> str:
    """Join path segments, percent-encoding caller-supplied identifiers.

    Raises:
        MemoryKitError: With kind ``INVALID_URL`` if a segment is empty
    """
    parts = []
    for segment in segments:
        if not isinstance(segment, str) or not segment.strip():
            raise MemoryKitError.invalid_url("/" + "/".join(map(str, segments)))
        parts.append(quote(segment, safe=""))
    return "/" + "/".join(parts)


class Resource:
    """Base class for API resources sharing one ``HTTPClient``."""

    def __init__(self, client: HTTPClient):
        self._client = client
