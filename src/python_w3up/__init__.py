from .agent import Agent, AgentData, ClaimListener, PollingClaimListener
from .capabilities import SpaceAbility, Store, Upload, Voucher
from .client import Client, create_client
from .config import Connection, ServiceConf
from .delegation import Delegation
from .did import Signer
from .errors import (
    AudienceMismatchError,
    AuthorizationError,
    InvalidDelegationError,
    NoCurrentSpaceError,
    RegistrationCancelled,
    TransportError,
    UnknownAbilityError,
    UnknownSpaceError,
    W3upError,
)
from .types import AgentMeta, FileLike, ShardMeta, Space, UploadOptions

__all__ = [
    "Agent",
    "AgentData",
    "AgentMeta",
    "AudienceMismatchError",
    "AuthorizationError",
    "ClaimListener",
    "Client",
    "Connection",
    "Delegation",
    "FileLike",
    "InvalidDelegationError",
    "NoCurrentSpaceError",
    "PollingClaimListener",
    "RegistrationCancelled",
    "ServiceConf",
    "ShardMeta",
    "Signer",
    "Space",
    "SpaceAbility",
    "Store",
    "TransportError",
    "UnknownAbilityError",
    "UnknownSpaceError",
    "Upload",
    "UploadOptions",
    "Voucher",
    "W3upError",
    "create_client",
]
