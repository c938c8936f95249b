from typing import Iterable, Optional

from .agent import Agent
from .capabilities import Ability, ability_name, parse_ability
from .config import ServiceConf
from .errors import NoCurrentSpaceError
from .types import InvocationConfig


class Base:
    """Holds the agent and service configuration shared by the client and capability invokers."""

    def __init__(self, agent: Agent, service_conf: Optional[ServiceConf] = None):
        self._agent = agent
        self._service_conf = service_conf or ServiceConf.default()

    async def _invocation_config(
        self,
        abilities: Iterable[Ability],
        resource: Optional[str] = None,
        audience: Optional[str] = None,
    ) -> InvocationConfig:
        """Derive a fresh invocation config for ``abilities`` on ``resource`` (default: current space).

        ``audience`` defaults to the configured upload service.

        Unknown abilities fail here. Whether the collected proofs are
        sufficient is left to the service.
        """
        names = [ability_name(parse_ability(a)) for a in abilities]
        resource = resource or self._agent.current_space()
        if not resource:
            raise NoCurrentSpaceError()
        return InvocationConfig(
            issuer=self._agent.issuer,
            with_=resource,
            proofs=self._agent.proofs(names, resource),
            audience=audience or self._service_conf.upload.id,
        )
