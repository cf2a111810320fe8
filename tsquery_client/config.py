"""
Client configuration

Settings come from keyword arguments or from the environment. A ``.env`` file in
the working directory is loaded by ``ClientConfig.from_env``.

    TSQUERY_URL            Flight SQL endpoint (grpc://, grpc+tcp:// or grpc+tls://)
    TSQUERY_TOKEN          API token sent as a bearer credential
    TSQUERY_ORG            default organization for queries
    TSQUERY_HEALTH_URL     HTTP base URL for health checks (derived from TSQUERY_URL if unset)
    TSQUERY_QUERY_TIMEOUT  seconds before the server call for a query is abandoned
    TSQUERY_HTTP_TIMEOUT   seconds for HTTP health checks
"""

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

DEFAULT_URL = "grpc://localhost:8181"

_HTTP_SCHEMES = {
    "grpc": "http",
    "grpc+tcp": "http",
    "grpc+tls": "https",
    "http": "http",
    "https": "https",
}


def http_base_url(url: str) -> str:
    """Map a Flight SQL endpoint onto the HTTP base URL served at the same address."""
    parts = urlsplit(url)
    scheme = _HTTP_SCHEMES.get(parts.scheme, "http")
    return urlunsplit((scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


@dataclass
class ClientConfig:
    """Connection settings for QueryClient"""

    url: str = DEFAULT_URL
    token: str = ""
    org: Optional[str] = None
    health_url: Optional[str] = None

    # Timeouts
    query_timeout: float = 30.0
    http_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "ClientConfig":
        load_dotenv()
        return cls(
            url=os.getenv("TSQUERY_URL", DEFAULT_URL),
            token=os.getenv("TSQUERY_TOKEN", ""),
            org=os.getenv("TSQUERY_ORG") or None,
            health_url=os.getenv("TSQUERY_HEALTH_URL") or None,
            query_timeout=float(os.getenv("TSQUERY_QUERY_TIMEOUT", "30")),
            http_timeout=float(os.getenv("TSQUERY_HTTP_TIMEOUT", "5")),
        )
