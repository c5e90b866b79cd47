"""
Invocation result models.

Standardizes the output of the CGI invocation pipeline.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel

DEFAULT_CHUNK_SIZE = 64 * 1024


class ProcessOutcome(BaseModel):
    """
    Raw outcome of one CGI process run.

    The exit status is informational; the HTTP status comes from the parsed output.
    """

    returncode: Optional[int] = None
    stdout: bytes = b""


@dataclass
class CgiResponse:
    """
    HTTP response translated from CGI output.

    `body` is a view over the captured process output, so the response body is
    never copied as a whole.
    """

    status_code: int = 200
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: memoryview = field(default_factory=lambda: memoryview(b""))

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def iter_body(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in bounded chunks."""
        for offset in range(0, len(self.body), chunk_size):
            yield bytes(self.body[offset : offset + chunk_size])
