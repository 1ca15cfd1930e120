"""
Permutation Engine.

해시 체인 기반 결정론적 셔플 (Fisher-Yates).

Canonical contract (independent verifiers must reproduce it bit-for-bit):
─────────────────────────────────────────────────────────────────

1. Digest:
   - SHA-256 of the secret bytes (32 bytes, 64 hex chars)
   - String secrets are UTF-8 encoded first

2. Index encoding:
   - encode(i) = i as a big-endian unsigned 32-bit integer

3. Shuffle:
   - start from [0, 1, ..., n-1]
   - for i = n-1 down to 1:
       r = int(SHA256(secret || encode(i)), big-endian)
       j = r mod (i + 1)
       swap deck[i], deck[j]

─────────────────────────────────────────────────────────────────
"""

import hashlib
import secrets
import struct

from fairdraw.config import MAX_DECK_SIZE
from fairdraw.utils.errors import InvalidPayloadError

DIGEST_SIZE = 32
DEFAULT_SECRET_BYTES = 32

_INDEX_FORMAT = ">I"


def to_secret_bytes(secret: bytes | bytearray | str) -> bytes:
    """Normalize a secret to bytes (str is UTF-8 encoded)."""
    if isinstance(secret, str):
        return secret.encode("utf-8")
    if isinstance(secret, (bytes, bytearray)):
        return bytes(secret)
    raise InvalidPayloadError("secret must be bytes or str", field="secret")


def to_digest_bytes(value: bytes | bytearray | str) -> bytes:
    """Normalize a digest given as 32 raw bytes or 64 hex characters."""
    if isinstance(value, str):
        try:
            raw = bytes.fromhex(value)
        except ValueError as exc:
            raise InvalidPayloadError(
                "digest must be a hex string", field="digest"
            ) from exc
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise InvalidPayloadError("digest must be bytes or hex str", field="digest")

    if len(raw) != DIGEST_SIZE:
        raise InvalidPayloadError(
            f"digest must be {DIGEST_SIZE} bytes, got {len(raw)}", field="digest"
        )
    return raw


def validate_deck_size(deck_size: int) -> int:
    if isinstance(deck_size, bool) or not isinstance(deck_size, int):
        raise InvalidPayloadError("deck_size must be an integer", field="deck_size")
    if deck_size < 0 or deck_size > MAX_DECK_SIZE:
        raise InvalidPayloadError(
            f"deck_size must be in [0, {MAX_DECK_SIZE}]", field="deck_size"
        )
    return deck_size


def digest(secret: bytes | str) -> bytes:
    """
    Commitment digest of a secret.

    Args:
        secret: 공개 전 비밀 값

    Returns:
        SHA-256 digest (32 bytes)
    """
    return hashlib.sha256(to_secret_bytes(secret)).digest()


def encode_index(i: int) -> bytes:
    """Encode a loop index as a big-endian unsigned 32-bit integer."""
    if not 0 <= i < MAX_DECK_SIZE:
        raise InvalidPayloadError(f"index out of range: {i}", field="index")
    return struct.pack(_INDEX_FORMAT, i)


def derive(secret: bytes | str, deck_size: int) -> list[int]:
    """
    결정론적 카드 셔플 (Fisher-Yates, hash chain).

    Args:
        secret: Disclosed secret
        deck_size: Number of cards (0..deck_size-1)

    Returns:
        Permutation of range(deck_size)

    Pure function: identical inputs always give the identical sequence.
    One SHA-256 per swap, so cost is linear in deck_size.
    """
    seed = to_secret_bytes(secret)
    validate_deck_size(deck_size)

    deck = list(range(deck_size))

    for i in range(deck_size - 1, 0, -1):
        digest_i = hashlib.sha256(seed + encode_index(i)).digest()
        r = int.from_bytes(digest_i, "big")
        j = r % (i + 1)
        deck[i], deck[j] = deck[j], deck[i]

    return deck


def deck_order_hash(deck: list[int] | tuple[int, ...]) -> str:
    """
    덱 순서의 해시 생성 (검증용).

    Args:
        deck: 카드 인덱스 리스트

    Returns:
        SHA-256 hex of the comma-joined card ids
    """
    deck_str = ",".join(str(c) for c in deck)
    return hashlib.sha256(deck_str.encode()).hexdigest()


def generate_secret(num_bytes: int = DEFAULT_SECRET_BYTES) -> bytes:
    """Generate a fresh round secret with the OS CSPRNG."""
    if num_bytes <= 0:
        raise InvalidPayloadError("num_bytes must be positive", field="num_bytes")
    return secrets.token_bytes(num_bytes)


def make_commitment(secret: bytes | str | None = None) -> tuple[bytes, str]:
    """
    Prepare a secret and its commitment for the authority.

    Returns:
        (secret, digest_hex) - publish digest_hex, keep secret private until reveal
    """
    raw = generate_secret() if secret is None else to_secret_bytes(secret)
    return raw, digest(raw).hex()
