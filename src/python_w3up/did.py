"""Ed25519 ``did:key`` identities.

A ``did:key`` DID is ``did:key:z`` followed by the base58btc encoding of the
Ed25519 multicodec prefix (``0xed 0x01``) and the 32 raw public key bytes.
"""

from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

DID_KEY_PREFIX = "did:key:z"
_ED25519_MULTICODEC = b"\xed\x01"
_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def _b58encode(data: bytes) -> str:
    n = int.from_bytes(data, "big")
    out = []
    while n > 0:
        n, rem = divmod(n, 58)
        out.append(_BASE58_ALPHABET[rem])
    for byte in data:
        if byte:
            break
        out.append("1")
    return "".join(reversed(out))


def _b58decode(encoded: str) -> bytes:
    n = 0
    for char in encoded:
        idx = _BASE58_ALPHABET.find(char)
        if idx < 0:
            raise ValueError(f"Invalid base58btc character {char!r}")
        n = n * 58 + idx
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    pad = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad + body


def did_from_public_key(public_key: bytes) -> str:
    return DID_KEY_PREFIX + _b58encode(_ED25519_MULTICODEC + public_key)


def public_key_from_did(did: str) -> bytes:
    """Recover the raw Ed25519 public key from a ``did:key`` DID."""
    if not did.startswith(DID_KEY_PREFIX):
        raise ValueError(f"Not a did:key DID: {did}")
    raw = _b58decode(did[len(DID_KEY_PREFIX):])
    if not raw.startswith(_ED25519_MULTICODEC) or len(raw) != 34:
        raise ValueError(f"Not an Ed25519 did:key: {did}")
    return raw[2:]


def verify_signature(did: str, signature: bytes, data: bytes) -> bool:
    """Verify ``signature`` over ``data`` against the key encoded in ``did``."""
    public_key = Ed25519PublicKey.from_public_bytes(public_key_from_did(did))
    try:
        public_key.verify(signature, data)
        return True
    except InvalidSignature:
        return False


class Signer:
    """An Ed25519 keypair that can sign on behalf of its ``did:key``."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._key = private_key
        public_bytes = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._did = did_from_public_key(public_bytes)

    @classmethod
    def generate(cls) -> "Signer":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret(cls, secret: bytes) -> "Signer":
        """Load a signer from its 32-byte raw private key."""
        return cls(Ed25519PrivateKey.from_private_bytes(secret))

    @property
    def secret(self) -> bytes:
        return self._key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    def did(self) -> str:
        return self._did

    def sign(self, data: bytes) -> bytes:
        return self._key.sign(data)

    def __repr__(self) -> str:
        return f"Signer({self._did})"


def principal_did(principal) -> str:
    """DID of a principal given as a DID string or an object with a ``did()`` method."""
    if isinstance(principal, str):
        return principal
    did: Optional[str] = principal.did() if callable(getattr(principal, "did", None)) else None
    if not did:
        raise TypeError(f"Expected a DID string or principal, got {type(principal).__name__}")
    return did
