"""Local agent: identity, spaces, proofs and issued delegations.

Registries are plain dicts owned by :class:`AgentData` and mutated without a
lock. Operations running concurrently on the same agent may interleave: a
``current_space()`` racing a ``set_current_space()`` sees either the old or
the new value, and the last write wins. Callers that need stronger ordering
must serialise access themselves.
"""

import asyncio
import base64
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .capabilities import TOP, Ability, Voucher, ability_name, capability_matches, parse_ability
from .config import DEFAULT_CLAIM_POLL_INTERVAL, Connection, ServiceConf
from .delegation import Delegation, delegate
from .did import DID_KEY_PREFIX, Signer
from .errors import (
    AudienceMismatchError,
    InvalidDelegationError,
    InvalidSignatureError,
    MissingProofError,
    NoCurrentSpaceError,
    NotFound,
    RegistrationCancelled,
    SpaceAlreadyRegisteredError,
    TransportError,
    UnknownSpaceError,
)
from .transport import get_json, invoke
from .types import DEFAULT_AUDIENCE_META, InvocationConfig

logger = logging.getLogger(__name__)

SpaceRecord = Tuple[str, Dict[str, Any]]

FREE_PRODUCT = "product:free"
SERVICE_META = {"name": "w3up", "type": "service"}


@dataclass
class AgentData:
    """Everything an agent persists.

    :param principal: The agent's signing key.
    :param meta: Agent display metadata.
    :param current_space: DID of the selected space, if any.
    :param spaces: Space DID to metadata.
    :param delegations: Delegation CID to delegation (with its metadata).
    :param path: JSON file written by :meth:`save`; nothing is written when ``None``.
    """

    principal: Signer
    meta: Dict[str, Any] = field(default_factory=lambda: DEFAULT_AUDIENCE_META.to_dict())
    current_space: Optional[str] = None
    spaces: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    delegations: Dict[str, Delegation] = field(default_factory=dict)
    path: Optional[str] = None

    @classmethod
    def create(cls, meta: Optional[Dict[str, Any]] = None, path: Optional[str] = None) -> "AgentData":
        data = cls(principal=Signer.generate(), path=path)
        if meta:
            data.meta = dict(meta)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": base64.b64encode(self.principal.secret).decode(),
            "meta": self.meta,
            "currentSpace": self.current_space,
            "spaces": self.spaces,
            "delegations": {
                cid: {
                    "archive": base64.b64encode(d.archive()).decode(),
                    "meta": dict(d.meta),
                }
                for cid, d in self.delegations.items()
            },
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], path: Optional[str] = None) -> "AgentData":
        delegations = {}
        for cid, entry in raw.get("delegations", {}).items():
            d = Delegation.extract(base64.b64decode(entry["archive"]))
            delegations[cid] = d.with_meta(entry.get("meta") or {})
        return cls(
            principal=Signer.from_secret(base64.b64decode(raw["principal"])),
            meta=raw.get("meta") or DEFAULT_AUDIENCE_META.to_dict(),
            current_space=raw.get("currentSpace"),
            spaces=raw.get("spaces") or {},
            delegations=delegations,
            path=path,
        )

    @classmethod
    def load(cls, path: str) -> "AgentData":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f), path=path)

    def save(self) -> None:
        if not self.path:
            return
        tmp = self.path + ".tmp"
        with open(tmp, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        os.replace(tmp, self.path)


class ClaimListener:
    """Source of out-of-band ``voucher/claim`` delegations."""

    async def wait_for_claim(self, space: str) -> Delegation:
        raise NotImplementedError


class PollingClaimListener(ClaimListener):
    """Poll ``GET {url}/voucher/claim/{space}`` until the service has a claim.

    A 404 means the claim has not been issued yet. There is no deadline;
    cancel the awaiting task (or pass a signal to ``register_space``) to stop.
    """

    def __init__(self, connection: Connection, interval: float = DEFAULT_CLAIM_POLL_INTERVAL):
        self.connection = connection
        self.interval = interval

    async def wait_for_claim(self, space: str) -> Delegation:
        while True:
            try:
                body = await get_json(self.connection, f"voucher/claim/{space}")
            except NotFound:
                await asyncio.sleep(self.interval)
                continue
            if isinstance(body, dict):
                raise TransportError("Expected delegation archive, got JSON")
            return Delegation.extract(body)


class Agent:
    """Owns the agent key, space registry and delegation store."""

    def __init__(
        self,
        data: AgentData,
        connection: Optional[Connection] = None,
        claims: Optional[ClaimListener] = None,
    ):
        """
        :param data: Agent state, shared with nothing else.
        :param connection: Access service used for space registration.
        :param claims: Where ``voucher/claim`` delegations arrive; polls the access service by default.
        """
        self._data = data
        self.connection = connection or ServiceConf.default().access
        self._claims = claims or PollingClaimListener(self.connection)
        # Space keys are only kept in memory, until the space is registered
        self._space_signers: Dict[str, Signer] = {}

    @classmethod
    def create(cls, path: Optional[str] = None, **kwargs) -> "Agent":
        """Load agent state from ``path`` when it exists, otherwise generate a new agent."""
        if path and os.path.exists(path):
            data = AgentData.load(path)
        else:
            data = AgentData.create(path=path)
            data.save()
        return cls(data, **kwargs)

    @property
    def data(self) -> AgentData:
        return self._data

    @property
    def issuer(self) -> Signer:
        return self._data.principal

    def did(self) -> str:
        return self.issuer.did()

    # ----------------------- Spaces -----------------------

    def current_space(self) -> Optional[str]:
        return self._data.current_space

    async def set_current_space(self, did: str) -> None:
        if did not in self._data.spaces:
            raise UnknownSpaceError(did)
        self._data.current_space = did
        self._data.save()
        logger.info("current space set did=%s", did)

    @property
    def spaces(self) -> Dict[str, Dict[str, Any]]:
        return self._data.spaces

    async def create_space(self, name: Optional[str] = None) -> SpaceRecord:
        """Create a space key and take a full delegation of it for this agent."""
        signer = Signer.generate()
        did = signer.did()
        meta: Dict[str, Any] = {"isRegistered": False}
        if name:
            meta["name"] = name
        proof = delegate(
            signer,
            self.did(),
            [{"can": TOP, "with": did}],
            facts=[{"space": dict(meta)}],
        )
        self._space_signers[did] = signer
        self._data.delegations[proof.cid] = proof
        self._data.spaces[did] = meta
        self._data.save()
        logger.info("space created did=%s name=%s", did, name)
        return did, dict(meta)

    async def import_space_from_delegation(self, delegation: Delegation) -> SpaceRecord:
        capabilities = delegation.capabilities
        if not capabilities or not isinstance(capabilities[0], dict) or not capabilities[0].get("with"):
            raise InvalidDelegationError(f"Delegation {delegation.cid} grants no capability on a space")
        facts = delegation.facts
        if facts and not isinstance(facts[0], dict):
            raise InvalidDelegationError(f"Delegation {delegation.cid} has a malformed space fact")
        self._check_proof(delegation)

        did = capabilities[0]["with"]
        meta: Dict[str, Any] = {}
        if facts and isinstance(facts[0].get("space"), dict):
            meta.update(facts[0]["space"])
        meta["isRegistered"] = True
        self._data.delegations[delegation.cid] = delegation
        self._data.spaces[did] = meta
        self._data.save()
        logger.info("space imported did=%s from=%s", did, delegation.issuer)
        return did, dict(meta)

    # ----------------------- Proofs & delegations -----------------------

    def proofs(self, abilities: Optional[List[Ability]] = None, resource: Optional[str] = None) -> List[Delegation]:
        """Unexpired delegations addressed to this agent.

        :param abilities: Keep only delegations authorising at least one of these. Empty or ``None`` keeps all.
        :param resource: With ``abilities``, also require the capability to be on this resource.
        """
        me = self.did()
        found = []
        for d in self._data.delegations.values():
            if d.audience != me or d.is_expired():
                continue
            if abilities and not any(capability_matches(c, abilities, resource) for c in d.capabilities):
                continue
            found.append(d)
        return found

    async def add_proof(self, delegation: Delegation) -> None:
        self._check_proof(delegation)
        self._data.delegations[delegation.cid] = delegation
        self._data.save()
        logger.debug("proof added cid=%s iss=%s", delegation.cid, delegation.issuer)

    def _check_proof(self, delegation: Delegation) -> None:
        if delegation.audience != self.did():
            raise AudienceMismatchError(delegation.audience, self.did())
        if delegation.issuer.startswith(DID_KEY_PREFIX):
            try:
                valid = delegation.verify()
            except ValueError:
                valid = False
            if not valid:
                raise InvalidSignatureError(f"Invalid signature on delegation {delegation.cid}")

    def delegations_with_meta(self, abilities: Optional[List[Ability]] = None) -> List[Tuple[Delegation, Dict[str, Any]]]:
        """Delegations this agent issued to other principals."""
        me = self.did()
        found = []
        for d in self._data.delegations.values():
            if d.issuer != me or d.audience == me:
                continue
            if abilities and not any(capability_matches(c, abilities) for c in d.capabilities):
                continue
            found.append((d, dict(d.meta)))
        return found

    async def delegate(
        self,
        abilities: List[Ability],
        audience,
        audience_meta: Optional[Dict[str, Any]] = None,
        expiration: Optional[int] = None,
        resource: Optional[str] = None,
    ) -> Delegation:
        """Delegate ``abilities`` on ``resource`` (default: current space) to ``audience``."""
        resource = resource or self.current_space()
        if not resource:
            raise NoCurrentSpaceError()
        names = [ability_name(parse_ability(a)) for a in abilities]
        proofs = self.proofs(names, resource)
        for name in names:
            if not any(capability_matches(c, [name], resource) for p in proofs for c in p.capabilities):
                raise MissingProofError(f"No proof for {name} on {resource}")
        delegation = delegate(
            self.issuer,
            audience,
            [{"can": name, "with": resource} for name in names],
            proofs=proofs,
            expiration=expiration,
            facts=[{"space": dict(self._data.spaces.get(resource, {}))}],
        )
        delegation = delegation.with_meta({"audience": dict(audience_meta or DEFAULT_AUDIENCE_META.to_dict())})
        self._data.delegations[delegation.cid] = delegation
        self._data.save()
        logger.debug("delegated cid=%s aud=%s can=%s", delegation.cid, delegation.audience, names)
        return delegation

    # ----------------------- Registration -----------------------

    async def register_space(self, email: str, signal: Optional[asyncio.Event] = None) -> None:
        """Register the current space with the service.

        Invokes ``voucher/redeem`` for the free product, waits for the
        ``voucher/claim`` delegation and invokes the claim, linking a full
        delegation of the space to the service for recovery.

        :param email: Account email.
        :param signal: Setting this event aborts the wait with :class:`RegistrationCancelled`.
        """
        space = self.current_space()
        meta = self._data.spaces.get(space) if space else None
        if not space or meta is None:
            raise NoCurrentSpaceError()
        if meta.get("isRegistered"):
            raise SpaceAlreadyRegisteredError(f"Space {space} is already registered")
        if signal is not None and signal.is_set():
            raise RegistrationCancelled("Registration aborted")

        service = self.connection.id
        identity = f"mailto:{email}"
        nb = {"product": FREE_PRODUCT, "identity": identity, "space": space}
        await invoke(
            InvocationConfig(issuer=self.issuer, with_=self.did(), proofs=[], audience=service),
            Voucher.REDEEM,
            self.connection,
            nb=nb,
        )
        logger.info("voucher redeem sent space=%s identity=%s", space, identity)

        claim = await self._wait_for_claim(space, signal)

        space_signer = self._space_signers.get(space)
        if space_signer is not None:
            recovery = delegate(
                space_signer,
                service,
                [{"can": TOP, "with": space}],
                facts=[{"space": dict(meta)}],
            )
        else:
            recovery = await self.delegate([TOP], service, audience_meta=SERVICE_META, resource=space)
        await invoke(
            InvocationConfig(issuer=self.issuer, with_=service, proofs=[claim, recovery], audience=service),
            Voucher.CLAIM,
            self.connection,
            nb=nb,
        )

        meta["isRegistered"] = True
        self._space_signers.pop(space, None)
        self._data.save()
        logger.info("space registered did=%s", space)

    async def _wait_for_claim(self, space: str, signal: Optional[asyncio.Event]) -> Delegation:
        claim_task = asyncio.ensure_future(self._claims.wait_for_claim(space))
        if signal is None:
            return await claim_task
        abort_task = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait({claim_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [t for t in (claim_task, abort_task) if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if claim_task in done:
            return claim_task.result()
        logger.info("registration cancelled space=%s", space)
        raise RegistrationCancelled("Registration aborted while waiting for voucher claim")

    def __repr__(self) -> str:
        return f"Agent({self.did()})"
