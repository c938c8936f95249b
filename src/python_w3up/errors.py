"""Exception hierarchy for the w3up client.

Local errors are raised before any network call. Remote errors are built
from HTTP status codes or from the ``error`` member of an invocation result
and carry the service's message verbatim.
"""

from typing import Any, Dict, Optional


class W3upError(Exception):
    """Base class for all client errors."""


# ----------------------- Local -----------------------


class UnknownSpaceError(W3upError):
    def __init__(self, did: str):
        super().__init__(f"Agent has no space with DID {did}")
        self.did = did


class NoCurrentSpaceError(W3upError):
    def __init__(self, message: str = "No current space: use create_space() or set_current_space()"):
        super().__init__(message)


class AudienceMismatchError(W3upError):
    def __init__(self, audience: str, expected: str):
        super().__init__(f"Delegation audience {audience} does not match agent {expected}")
        self.audience = audience
        self.expected = expected


class UnknownAbilityError(W3upError, ValueError):
    def __init__(self, ability: str):
        super().__init__(f"Unknown ability: {ability!r}")
        self.ability = ability


class InvalidSignatureError(W3upError):
    pass


class InvalidDelegationError(W3upError, ValueError):
    pass


class MissingProofError(W3upError):
    pass


class SpaceAlreadyRegisteredError(W3upError):
    pass


class RegistrationCancelled(W3upError):
    pass


# ----------------------- Remote -----------------------


class TransportError(W3upError):
    """Remote service failure.

    :param message: Reason reported by the service.
    :param status: HTTP status code, if the failure was an HTTP error.
    :param name: Error name from an invocation result, if any.
    """

    def __init__(self, message: str, status: Optional[int] = None, name: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.name = name


class AuthorizationError(TransportError):
    pass


class NotFound(TransportError):
    pass


class TooManyRequests(TransportError):
    pass


_AUTHORIZATION_FAILURES = {"Unauthorized", "InvalidProof", "InvalidAudience", "Expired"}


def get_error_from_status(status: int, reason: str) -> TransportError:
    """Map an HTTP error status to an exception instance."""
    message = f"HTTP {status}: {reason}"
    if status in (401, 403):
        return AuthorizationError(message, status=status)
    if status == 404:
        return NotFound(message, status=status)
    if status == 429:
        return TooManyRequests(message, status=status)
    return TransportError(message, status=status)


def get_error_from_result(error: Dict[str, Any]) -> TransportError:
    """Map the ``error`` member of an invocation result to an exception instance."""
    name = error.get("name") or "Error"
    message = error.get("message") or name
    if name in _AUTHORIZATION_FAILURES:
        return AuthorizationError(message, name=name)
    if name == "NotFound":
        return NotFound(message, name=name)
    return TransportError(message, name=name)
