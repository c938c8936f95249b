"""Ability names understood by the upload and access services.

Abilities are closed enumerations per namespace. Members are ``str``
subclasses, so ``Store.ADD == "store/add"`` and they can be passed wherever
an ability string is expected.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from .errors import UnknownAbilityError

TOP = "*"


class Store(str, Enum):
    ADD = "store/add"
    REMOVE = "store/remove"
    LIST = "store/list"
    ALL = "store/*"


class Upload(str, Enum):
    ADD = "upload/add"
    REMOVE = "upload/remove"
    LIST = "upload/list"
    ALL = "upload/*"


class SpaceAbility(str, Enum):
    INFO = "space/info"
    ALL = "space/*"


class Voucher(str, Enum):
    REDEEM = "voucher/redeem"
    CLAIM = "voucher/claim"
    ALL = "voucher/*"


Ability = Union[Store, Upload, SpaceAbility, Voucher, str]

_NAMESPACES = {
    "store": Store,
    "upload": Upload,
    "space": SpaceAbility,
    "voucher": Voucher,
}


def parse_ability(value: Ability) -> Ability:
    """Return the enum member for ``value``.

    ``"*"`` is returned as-is. Anything else that is not a member of one of
    the namespaces raises :class:`UnknownAbilityError`.
    """
    if isinstance(value, Enum):
        return value
    if value == TOP:
        return TOP
    namespace, _, _ = str(value).partition("/")
    enum_cls = _NAMESPACES.get(namespace)
    if enum_cls is None:
        raise UnknownAbilityError(value)
    try:
        return enum_cls(value)
    except ValueError:
        raise UnknownAbilityError(value) from None


def ability_name(ability: Ability) -> str:
    """Plain string form of an ability (enum members render as their value)."""
    return ability.value if isinstance(ability, Enum) else str(ability)


def ability_matches(granted: Ability, requested: Ability) -> bool:
    """Whether a granted ability covers a requested one."""
    granted = ability_name(granted)
    requested = ability_name(requested)
    if granted == TOP or granted == requested:
        return True
    if granted.endswith("/*"):
        return requested.startswith(granted[:-1])
    return False


def capability_matches(
    capability: Dict[str, Any], abilities: Iterable[str], resource: Optional[str] = None
) -> bool:
    """Whether ``capability`` authorises any of ``abilities`` (over ``resource``, if given)."""
    if resource is not None and capability.get("with") != resource:
        return False
    can = capability.get("can", "")
    return any(ability_matches(can, ability) for ability in abilities)
