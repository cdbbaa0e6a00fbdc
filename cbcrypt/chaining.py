"""
Cipher-block chaining.

The chaining value always advances to the ciphertext block, in both
directions, so block ``i`` depends on block ``i - 1`` and the stream has to be
processed in order.
"""
import enum
import logging

from .config import DEFAULT_CONFIG
from .errors import InvalidIVFormat

logger = logging.getLogger(__name__)

BLOCK_SIZE = DEFAULT_CONFIG.BLOCK_SIZE


class Mode(enum.Enum):
    ENCRYPT = 'encrypt'
    DECRYPT = 'decrypt'


def xor_block(a, b) -> bytes:
    return (int.from_bytes(a, 'big') ^ int.from_bytes(b, 'big')).to_bytes(BLOCK_SIZE, 'big')


class CipherContext:
    """
    CBC state for one stream: a keyed block cipher, the previous block and
    the direction.

    Args:
        cipher: Object with ``encrypt_block``, ``decrypt_block`` and ``wipe``
            (see :func:`cbcrypt.aes.new_block_cipher`).
        iv: 16-byte initialization vector.
        direction: Mode.ENCRYPT or Mode.DECRYPT.
    """

    def __init__(self, cipher, iv, direction: Mode):
        if len(iv) != BLOCK_SIZE:
            raise InvalidIVFormat(f"IV must be {BLOCK_SIZE} bytes, got {len(iv)}")
        self.cipher = cipher
        self.direction = Mode(direction)
        self.previous = bytes(iv)
        self.blocks = 0

    def encrypt_block(self, block) -> bytes:
        out = self.cipher.encrypt_block(xor_block(block, self.previous))
        self.previous = out
        self.blocks += 1
        return out

    def decrypt_block(self, block) -> bytes:
        block = bytes(block)
        out = xor_block(self.cipher.decrypt_block(block), self.previous)
        self.previous = block
        self.blocks += 1
        return out

    def update(self, data) -> bytes:
        """Run every block of a block-aligned buffer through the chain, in order."""
        if len(data) % BLOCK_SIZE:
            raise ValueError(f"Data length {len(data)} is not a multiple of {BLOCK_SIZE}")
        step = self.encrypt_block if self.direction is Mode.ENCRYPT else self.decrypt_block
        view = memoryview(data)
        return b''.join(step(view[i:i + BLOCK_SIZE]) for i in range(0, len(data), BLOCK_SIZE))

    def wipe(self) -> None:
        if self.cipher is not None:
            self.cipher.wipe()
            self.cipher = None
        self.previous = bytes(BLOCK_SIZE)
        logger.debug(f"Wiped {self.direction.value} context after {self.blocks} blocks")
