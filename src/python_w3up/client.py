"""Async w3up client: uploads and delegated authorization for spaces."""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Union

from . import upload
from .agent import Agent
from .base import Base
from .capabilities import Ability, Store, Upload
from .capability import SpaceClient, StoreClient, UploadClient
from .config import ServiceConf
from .delegation import Delegation
from .did import Signer
from .types import DEFAULT_AUDIENCE_META, AgentMeta, ContentId, FileLike, Space, UploadOptions

logger = logging.getLogger(__name__)

UPLOAD_ABILITIES = (Store.ADD, Upload.ADD)


@dataclass(frozen=True)
class CapabilityClients:
    store: StoreClient
    upload: UploadClient
    space: SpaceClient


class Client(Base):
    """High-level w3up client.

    Every upload derives a fresh invocation config (agent as issuer, current
    space as resource, matching proofs, upload connection DID as audience) and hands
    it to the upload pipeline. Space and delegation methods read through to
    the agent and wrap results in :class:`Space` / :class:`Delegation` values.

    Failures from the service are passed through unchanged; nothing is retried.
    """

    def __init__(self, agent: Agent, service_conf: Optional[ServiceConf] = None, uploader=None):
        """Initialize client.

        :param agent: Agent owning identity, spaces and proofs.
        :param service_conf: Access and upload service connections (defaults to web3.storage).
        :param uploader: Object or module providing ``upload_file``, ``upload_directory`` and
            ``upload_car`` coroutines. Defaults to :mod:`python_w3up.upload`.
        """
        super().__init__(agent, service_conf)
        self._uploader = uploader or upload
        self.capability = CapabilityClients(
            store=StoreClient(agent, self._service_conf),
            upload=UploadClient(agent, self._service_conf),
            space=SpaceClient(agent, self._service_conf),
        )

    def _upload_options(self, options: Optional[UploadOptions]) -> UploadOptions:
        options = options or UploadOptions()
        if options.connection is None:
            options = replace(options, connection=self._service_conf.upload)
        return options

    # ----------------------- Uploads -----------------------

    async def upload_file(self, file, options: Optional[UploadOptions] = None) -> ContentId:
        """Upload a file and return the root CID.

        :param file: ``bytes`` or a binary file object.
        :param options: Upload options; ``connection`` defaults to the configured upload service.
        """
        options = self._upload_options(options)
        conf = await self._invocation_config(UPLOAD_ABILITIES, audience=options.connection.id)
        return await self._uploader.upload_file(conf, file, options)

    async def upload_directory(self, files: Iterable[FileLike], options: Optional[UploadOptions] = None) -> ContentId:
        """Upload files as one directory, preserving their relative paths, and return the root CID."""
        options = self._upload_options(options)
        conf = await self._invocation_config(UPLOAD_ABILITIES, audience=options.connection.id)
        return await self._uploader.upload_directory(conf, files, options)

    async def upload_car(self, car, options: Optional[UploadOptions] = None) -> ContentId:
        """Upload a CAR file and register an upload linking its shards.

        Unlike ``capability.store.add`` this also invokes ``upload/add``. Use
        ``options.on_shard_stored`` to learn shard CIDs as they are stored.
        """
        options = self._upload_options(options)
        conf = await self._invocation_config(UPLOAD_ABILITIES, audience=options.connection.id)
        return await self._uploader.upload_car(conf, car, options)

    # ----------------------- Spaces -----------------------

    def agent(self) -> Signer:
        """The current user agent (this device)."""
        return self._agent.issuer

    def current_space(self) -> Optional[Space]:
        did = self._agent.current_space()
        if not did:
            return None
        return Space(did, dict(self._agent.spaces.get(did, {})))

    async def set_current_space(self, did: str) -> None:
        await self._agent.set_current_space(did)

    def spaces(self) -> List[Space]:
        return [Space(did, dict(meta)) for did, meta in self._agent.spaces.items()]

    async def create_space(self, name: Optional[str] = None) -> Space:
        """Create a new space. It does not become the current space."""
        did, meta = await self._agent.create_space(name)
        return Space(did, meta)

    async def register_space(self, email: str, signal: Optional[asyncio.Event] = None) -> None:
        """Register the current space with the service.

        Invokes ``voucher/redeem`` for the free tier, waits for the
        ``voucher/claim`` and invokes it, adding a full space delegation to
        the service for recovery. Waits indefinitely unless ``signal`` is set
        or the task is cancelled.
        """
        await self._agent.register_space(email, signal=signal)

    async def add_space(self, proof: Delegation) -> Space:
        """Add a space from a received proof."""
        did, meta = await self._agent.import_space_from_delegation(proof)
        return Space(did, meta)

    # ----------------------- Proofs & delegations -----------------------

    def proofs(self, abilities: Optional[List[Ability]] = None) -> List[Delegation]:
        """Delegations whose audience is this agent.

        :param abilities: Keep proofs authorising any of these; empty or ``None`` returns all.
        """
        return self._agent.proofs(abilities)

    async def add_proof(self, proof: Delegation) -> None:
        await self._agent.add_proof(proof)

    def delegations(self, abilities: Optional[List[Ability]] = None) -> List[Delegation]:
        """Delegations this agent created for others."""
        return [Delegation(d.root, d.blocks, meta) for d, meta in self._agent.delegations_with_meta(abilities)]

    async def create_delegation(
        self,
        audience,
        abilities: List[Ability],
        audience_meta: Optional[Union[AgentMeta, dict]] = None,
        expiration: Optional[int] = None,
        resource: Optional[str] = None,
    ) -> Delegation:
        """Delegate ``abilities`` on the current space (or ``resource``) to ``audience``.

        The returned delegation must be sent to the audience out of band,
        e.g. as ``delegation.archive()``.
        """
        meta = audience_meta or DEFAULT_AUDIENCE_META
        if isinstance(meta, AgentMeta):
            meta = meta.to_dict()
        d = await self._agent.delegate(
            abilities, audience, audience_meta=meta, expiration=expiration, resource=resource
        )
        return Delegation(d.root, d.blocks, {"audience": dict(meta)})


def create_client(
    path: Optional[str] = None, service_conf: Optional[ServiceConf] = None, **kwargs
) -> Client:
    """Create a client, loading agent state from ``path`` if it exists.

    A new agent is generated (and saved to ``path``, if given) otherwise.
    """
    service_conf = service_conf or ServiceConf.default()
    agent = Agent.create(path, connection=service_conf.access)
    logger.debug("client created agent=%s", agent.did())
    return Client(agent, service_conf, **kwargs)
