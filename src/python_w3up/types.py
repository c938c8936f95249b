"""Value objects returned by and passed to the client."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import Connection
from .delegation import Delegation
from .did import Signer

DID = str
ContentId = str


@dataclass(frozen=True)
class Space:
    """A space known to the agent. Built on demand, never cached."""

    did: DID
    meta: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def name(self) -> str:
        return self.meta.get("name", "")

    @property
    def registered(self) -> bool:
        return bool(self.meta.get("isRegistered", False))


@dataclass(frozen=True)
class AgentMeta:
    name: str = "agent"
    type: str = "device"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type}


DEFAULT_AUDIENCE_META = AgentMeta()


@dataclass(frozen=True)
class InvocationConfig:
    """Per-call bundle used to sign one invocation.

    :param issuer: Signer of the invocation (the agent).
    :param with_: Resource the invocation targets (the current space).
    :param proofs: Delegations authorising the requested abilities.
    :param audience: DID of the service the invocation is addressed to.
    """

    issuer: Signer
    with_: DID
    proofs: List[Delegation] = field(hash=False)
    audience: DID


@dataclass(frozen=True)
class FileLike:
    """A named file for directory uploads. ``name`` may contain ``/``-separated paths."""

    name: str
    data: bytes


@dataclass(frozen=True)
class ShardMeta:
    cid: ContentId
    size: int


@dataclass
class UploadOptions:
    """Options for upload operations.

    :param connection: Upload service connection; the client's configured one when ``None``.
    :param on_shard_stored: Called with a :class:`ShardMeta` after each shard is stored.
    :param root_cid: Root CID of a pre-built CAR, if known.
    """

    connection: Optional[Connection] = None
    on_shard_stored: Optional[Callable[[ShardMeta], None]] = None
    root_cid: Optional[ContentId] = None
