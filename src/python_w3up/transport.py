"""HTTP transport for signed capability invocations."""

import logging
import time
from typing import Any, Dict, Optional, Union

import httpx

from .capabilities import Ability, ability_name
from .config import DEFAULT_EXPIRATION_SECONDS, Connection
from .delegation import delegate
from .errors import TransportError, get_error_from_result, get_error_from_status
from .types import InvocationConfig

logger = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPE = "application/vnd.w3up.delegation+json"


def _full_url(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


def _handle_response(resp: httpx.Response) -> Union[Dict[str, Any], bytes]:
    if resp.status_code >= 400:
        reason = resp.headers.get("X-Reason") or resp.text
        raise get_error_from_status(resp.status_code, reason)
    ctype = resp.headers.get("Content-Type", "")
    if "application/json" in ctype:
        try:
            return resp.json()
        except ValueError:
            raise TransportError("Invalid JSON in response", status=resp.status_code)
    return resp.content


async def invoke(
    conf: InvocationConfig,
    ability: Ability,
    connection: Connection,
    nb: Optional[Dict[str, Any]] = None,
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
) -> Any:
    """Sign an invocation of ``ability`` on ``conf.with_`` and execute it.

    The proofs in ``conf`` are linked but not checked; the service decides
    whether they authorise the call.

    :return: The ``ok`` member of the invocation result.
    """
    capability: Dict[str, Any] = {"can": ability_name(ability), "with": conf.with_}
    if nb:
        capability["nb"] = nb
    invocation = delegate(
        conf.issuer,
        conf.audience,
        [capability],
        proofs=conf.proofs,
        expiration=int(time.time()) + expiration_seconds,
    )
    logger.debug(
        "invoke can=%s with=%s aud=%s proofs=%d",
        capability["can"],
        conf.with_,
        conf.audience,
        len(conf.proofs),
    )
    async with httpx.AsyncClient(transport=connection.transport) as client:
        resp = await client.post(
            connection.url,
            content=invocation.archive(),
            headers={"Content-Type": ARCHIVE_CONTENT_TYPE},
        )
    result = _handle_response(resp)
    if not isinstance(result, dict):
        raise TransportError("Expected JSON invocation result", status=resp.status_code)
    if result.get("error"):
        raise get_error_from_result(result["error"])
    return result.get("ok")


async def put_bytes(
    url: str,
    data: bytes,
    connection: Connection,
    headers: Optional[Dict[str, str]] = None,
) -> None:
    """PUT raw bytes to a (pre-signed) URL."""
    async with httpx.AsyncClient(transport=connection.transport) as client:
        resp = await client.put(url, content=data, headers=headers or {})
    _handle_response(resp)


async def get_json(connection: Connection, path: str) -> Union[Dict[str, Any], bytes]:
    """GET ``path`` relative to the connection URL."""
    async with httpx.AsyncClient(transport=connection.transport) as client:
        resp = await client.get(_full_url(connection.url, path))
    return _handle_response(resp)
