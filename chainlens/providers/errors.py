from typing import Optional


class UpstreamHTTPError(Exception):
    """A call to an external data provider failed (HTTP status, transport, or RPC error)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "tatum",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.url = url
