"""``upload/*`` capability: root CIDs linked to the shards holding them."""

from typing import Any, Dict, List, Optional

from ..base import Base
from ..capabilities import Upload
from ..config import Connection
from ..transport import invoke
from ..types import ContentId, InvocationConfig


async def add(
    conf: InvocationConfig, root: ContentId, shards: List[ContentId], connection: Connection
) -> Dict[str, Any]:
    return await invoke(conf, Upload.ADD, connection, nb={"root": root, "shards": list(shards)})


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
    return await invoke(conf, Upload.LIST, connection, nb=nb)


async def remove(conf: InvocationConfig, root: ContentId, connection: Connection) -> None:
    await invoke(conf, Upload.REMOVE, connection, nb={"root": root})


class UploadClient(Base):
    """Invokes ``upload/*`` on the upload service for the current space."""

    async def add(self, root: ContentId, shards: List[ContentId]) -> Dict[str, Any]:
        conf = await self._invocation_config([Upload.ADD])
        return await add(conf, root, shards, self._service_conf.upload)

    async def list(self, cursor: Optional[str] = None, size: Optional[int] = None) -> Dict[str, Any]:
        conf = await self._invocation_config([Upload.LIST])
        return await list_page(conf, self._service_conf.upload, cursor=cursor, size=size)

    async def remove(self, root: ContentId) -> None:
        conf = await self._invocation_config([Upload.REMOVE])
        await remove(conf, root, self._service_conf.upload)
