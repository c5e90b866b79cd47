"""
Input context models.

Encapsulates all data required to process a gateway request.
"""

from typing import List, Optional, Tuple

from fastapi import Request
from pydantic import BaseModel, Field


class InputContext(BaseModel):
    """
    Rich context representing an incoming request.

    This model decouples the service layer from FastAPI's Request object.
    Header names are kept as received and duplicates keep their arrival order.
    Request bytes are decoded as latin-1 so every byte maps to one character.
    """

    method: str
    path: str
    query_string: str = ""
    path_and_query: Optional[str] = None
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: Optional[bytes] = None

    def header(self, name: str) -> Optional[str]:
        """First value of a header, matched case-insensitively."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @classmethod
    async def from_request(cls, request: Request) -> "InputContext":
        """Materialize a Starlette request, body included."""
        # Prefer the undecoded target so percent-escapes reach the CGI program intact.
        raw_path = request.scope.get("raw_path")
        path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
        query = request.scope.get("query_string", b"").decode("latin-1")
        path_and_query = f"{path}?{query}" if query else path

        body = await request.body()
        return cls(
            method=request.method,
            path=path,
            query_string=query,
            path_and_query=path_and_query or None,
            headers=[
                (key.decode("latin-1"), value.decode("latin-1"))
                for key, value in request.headers.raw
            ],
            body=body or None,
        )
