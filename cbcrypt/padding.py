"""PKCS#7 padding to the AES block boundary."""
from .config import DEFAULT_CONFIG
from .errors import PaddingValidationError

BLOCK_SIZE = DEFAULT_CONFIG.BLOCK_SIZE


def pad(tail: bytes) -> bytes:
    """
    Pad the unaligned end of a plaintext stream.

    Each pad byte equals the pad length; block-aligned input gets a full block
    of ``0x10`` so the padding is never ambiguous.
    """
    n = BLOCK_SIZE - len(tail) % BLOCK_SIZE
    return bytes(tail) + bytes([n]) * n


def unpad(block: bytes) -> bytes:
    """
    Validate and strip padding from the final decrypted block.

    This is the only integrity check the engine performs. It is not
    authentication: garbage ends in a valid pad roughly once in 256 tries.

    Raises:
        PaddingValidationError: If the pad length or pad bytes are wrong.
    """
    if not block or len(block) % BLOCK_SIZE:
        raise PaddingValidationError(f"Padded data must be a non-empty multiple of {BLOCK_SIZE} bytes")
    n = block[-1]
    if not 1 <= n <= BLOCK_SIZE:
        raise PaddingValidationError(f"Invalid padding length {n}")
    bad = 0
    for b in block[-n:]:
        bad |= b ^ n
    if bad:
        raise PaddingValidationError("Invalid padding bytes")
    return bytes(block[:-n])
