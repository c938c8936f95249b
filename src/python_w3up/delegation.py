"""Signed delegations and their block encoding.

A delegation is a root block plus every block it links through ``prf``.
Root block bytes are canonical JSON::

    {"payload": {"iss": ..., "aud": ..., "att": [...], "exp": ..., "prf": [...], "fct": [...]},
     "sig": "<base64url Ed25519 signature over canonical payload JSON>"}

The block CID is the hex SHA-256 of those bytes.
"""

import base64
import hashlib
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .did import Signer, principal_did, verify_signature
from .errors import InvalidDelegationError


def canonical_json(value: Any) -> bytes:
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode()


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


@dataclass(frozen=True)
class Block:
    cid: str
    bytes: bytes

    @classmethod
    def encode(cls, value: Any) -> "Block":
        data = canonical_json(value)
        return cls(cid=hashlib.sha256(data).hexdigest(), bytes=data)

    def decode(self) -> Dict[str, Any]:
        return json.loads(self.bytes)


@dataclass(frozen=True)
class Delegation:
    """A delegation from ``issuer`` to ``audience``.

    :param root: The signed root block.
    :param blocks: Root block and all linked proof blocks, keyed by CID.
    :param meta: Local metadata, e.g. ``{"audience": {"name": ..., "type": ...}}``.
    """

    root: Block
    blocks: Mapping[str, Block] = field(hash=False)
    meta: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def _payload(self) -> Dict[str, Any]:
        return self.root.decode()["payload"]

    @property
    def cid(self) -> str:
        return self.root.cid

    @property
    def issuer(self) -> str:
        return self._payload["iss"]

    @property
    def audience(self) -> str:
        return self._payload["aud"]

    @property
    def capabilities(self) -> List[Dict[str, Any]]:
        return self._payload["att"]

    @property
    def expiration(self) -> Optional[int]:
        return self._payload.get("exp")

    @property
    def proofs(self) -> List[str]:
        return self._payload.get("prf", [])

    @property
    def facts(self) -> List[Dict[str, Any]]:
        return self._payload.get("fct", [])

    @property
    def signature(self) -> bytes:
        return _b64decode(self.root.decode()["sig"])

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expiration is None:
            return False
        return (now if now is not None else time.time()) >= self.expiration

    def verify(self) -> bool:
        """Check the root signature against the issuer's ``did:key``."""
        return verify_signature(self.issuer, self.signature, canonical_json(self._payload))

    def with_meta(self, meta: Mapping[str, Any]) -> "Delegation":
        return Delegation(self.root, self.blocks, dict(meta))

    def proof_delegations(self) -> List["Delegation"]:
        """Linked proofs as delegations, each carrying the shared block set."""
        return [Delegation(self.blocks[cid], self.blocks) for cid in self.proofs if cid in self.blocks]

    def archive(self) -> bytes:
        """Serialize root and blocks for out-of-band transfer."""
        return canonical_json(
            {
                "root": self.cid,
                "blocks": {cid: _b64encode(block.bytes) for cid, block in self.blocks.items()},
            }
        )

    @classmethod
    def extract(cls, data: bytes) -> "Delegation":
        """Inverse of :meth:`archive`. Block CIDs are re-derived from their bytes."""
        try:
            archive = json.loads(data)
            blocks: Dict[str, Block] = {}
            for encoded in archive["blocks"].values():
                raw = _b64decode(encoded)
                block = Block(cid=hashlib.sha256(raw).hexdigest(), bytes=raw)
                blocks[block.cid] = block
            root = blocks[archive["root"]]
            body = root.decode()
            payload = body["payload"]
            if not isinstance(body["sig"], str):
                raise TypeError("sig must be a string")
            for key in ("iss", "aud"):
                if not isinstance(payload[key], str):
                    raise TypeError(f"{key} must be a string")
            if not isinstance(payload["att"], list):
                raise TypeError("att must be a list")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise InvalidDelegationError(f"Invalid delegation archive: {e}") from e
        return cls(root, blocks)


def delegate(
    issuer: Signer,
    audience,
    capabilities: Iterable[Dict[str, Any]],
    proofs: Iterable[Delegation] = (),
    expiration: Optional[int] = None,
    facts: Optional[List[Dict[str, Any]]] = None,
) -> Delegation:
    """Create and sign a delegation from ``issuer`` to ``audience``."""
    proofs = list(proofs)
    payload = {
        "iss": issuer.did(),
        "aud": principal_did(audience),
        "att": [dict(c) for c in capabilities],
        "exp": expiration,
        "prf": [p.cid for p in proofs],
        "fct": facts or [],
    }
    sig = issuer.sign(canonical_json(payload))
    root = Block.encode({"payload": payload, "sig": _b64encode(sig)})
    blocks: Dict[str, Block] = {}
    for proof in proofs:
        blocks.update(proof.blocks)
    blocks[root.cid] = root
    return Delegation(root, blocks)
