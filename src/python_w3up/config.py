"""Service endpoints and client defaults."""

import os
from dataclasses import dataclass
from typing import Optional

import httpx

# Lifetime of a signed invocation
DEFAULT_EXPIRATION_SECONDS = 3600
DEFAULT_CLAIM_POLL_INTERVAL = 1.0

DEFAULT_SERVICE_DID = "did:web:web3.storage"
DEFAULT_ACCESS_URL = "https://access.web3.storage"
DEFAULT_UPLOAD_URL = "https://up.web3.storage"


@dataclass(frozen=True)
class Connection:
    """A remote service: its DID, HTTP endpoint and optional transport override.

    :param id: Service DID, the audience of invocations sent to it.
    :param url: Endpoint invocations are POSTed to.
    :param transport: ``httpx`` transport passed to each ``AsyncClient`` (tests use ``MockTransport``).
    """

    id: str
    url: str
    transport: Optional[httpx.AsyncBaseTransport] = None


@dataclass(frozen=True)
class ServiceConf:
    access: Connection
    upload: Connection

    @classmethod
    def default(cls) -> "ServiceConf":
        return cls(
            access=Connection(DEFAULT_SERVICE_DID, DEFAULT_ACCESS_URL),
            upload=Connection(DEFAULT_SERVICE_DID, DEFAULT_UPLOAD_URL),
        )

    @classmethod
    def from_env(cls) -> "ServiceConf":
        """Build from ``W3UP_ACCESS_URL``/``W3UP_ACCESS_DID``/``W3UP_UPLOAD_URL``/``W3UP_UPLOAD_DID``."""
        return cls(
            access=Connection(
                os.getenv("W3UP_ACCESS_DID", DEFAULT_SERVICE_DID),
                os.getenv("W3UP_ACCESS_URL", DEFAULT_ACCESS_URL),
            ),
            upload=Connection(
                os.getenv("W3UP_UPLOAD_DID", DEFAULT_SERVICE_DID),
                os.getenv("W3UP_UPLOAD_URL", DEFAULT_UPLOAD_URL),
            ),
        )
