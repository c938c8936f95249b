from typing import Any, Dict, Optional

from ..base import Base
from ..capabilities import SpaceAbility
from ..transport import invoke


class SpaceClient(Base):
    """Invokes ``space/*`` on the upload service."""

    async def info(self, resource: Optional[str] = None) -> Dict[str, Any]:
        """Space info for ``resource``, or the current space."""
        conf = await self._invocation_config([SpaceAbility.INFO], resource=resource)
        return await invoke(conf, SpaceAbility.INFO, self._service_conf.upload)
