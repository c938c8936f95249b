"""``store/*`` capability: CAR shards held by the service."""

import hashlib
import logging
from typing import Any, Dict, Optional

from ..base import Base
from ..capabilities import Store
from ..config import Connection
from ..transport import invoke, put_bytes
from ..types import ContentId, InvocationConfig

logger = logging.getLogger(__name__)


def content_id(data: bytes) -> ContentId:
    return hashlib.sha256(data).hexdigest()


async def add(conf: InvocationConfig, data: bytes, connection: Connection) -> ContentId:
    """Store ``data`` as one shard and return its CID.

    The service either already has the bytes (``status: "done"``) or answers
    with a URL to PUT them to (``status: "upload"``).
    """
    cid = content_id(data)
    result = await invoke(conf, Store.ADD, connection, nb={"link": cid, "size": len(data)}) or {}
    if result.get("status") == "upload":
        logger.debug("store/add uploading cid=%s size=%d", cid, len(data))
        await put_bytes(result["url"], data, connection, headers=result.get("headers"))
    return cid


async def list_page(
    conf: InvocationConfig,
    connection: Connection,
    cursor: Optional[str] = None,
    size: Optional[int] = None,
) -> Dict[str, Any]:
    nb: Dict[str, Any] = {}
    if cursor:
        nb["cursor"] = cursor
    if size:
        nb["size"] = size
    return await invoke(conf, Store.LIST, connection, nb=nb)


async def remove(conf: InvocationConfig, cid: ContentId, connection: Connection) -> None:
    await invoke(conf, Store.REMOVE, connection, nb={"link": cid})


class StoreClient(Base):
    """Invokes ``store/*`` on the upload service for the current space."""

    async def add(self, data: bytes) -> ContentId:
        conf = await self._invocation_config([Store.ADD])
        return await add(conf, data, self._service_conf.upload)

    async def list(self, cursor: Optional[str] = None, size: Optional[int] = None) -> Dict[str, Any]:
        conf = await self._invocation_config([Store.LIST])
        return await list_page(conf, self._service_conf.upload, cursor=cursor, size=size)

    async def remove(self, cid: ContentId) -> None:
        conf = await self._invocation_config([Store.REMOVE])
        await remove(conf, cid, self._service_conf.upload)
