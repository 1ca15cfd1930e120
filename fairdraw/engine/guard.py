"""Access Guard.

Single equality check against the authority principal fixed at construction.
Applied before ``commit``, ``reveal`` and ``reset``; ``draw`` and the queries
are open to any caller.
"""

import hmac

from fairdraw.utils.errors import InvalidPayloadError, UnauthorizedError


class AccessGuard:
    """Authority-only capability check."""

    def __init__(self, authority: str):
        if not isinstance(authority, str) or not authority.strip():
            raise InvalidPayloadError("authority must be a non-empty string", field="authority")
        self._authority = authority.strip()

    @property
    def authority(self) -> str:
        return self._authority

    def is_authority(self, caller: str) -> bool:
        if not isinstance(caller, str):
            return False
        return hmac.compare_digest(caller.encode(), self._authority.encode())

    def authorize(self, caller: str, operation: str = "operation") -> None:
        """
        Raise unless ``caller`` is the authority.

        Raises:
            UnauthorizedError: caller is not the authority
        """
        if not self.is_authority(caller):
            raise UnauthorizedError(caller=str(caller), operation=operation)
