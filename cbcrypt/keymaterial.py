"""
Key and IV material.

Secrets live in mutable ``bytearray`` buffers so they can be zero-filled once a
request is done with them. Use the objects as context managers to get the wipe
on every exit path:

    with parse_key(text) as key, generate_iv() as iv:
        ...
"""
import base64
import binascii
import hmac
import logging
import secrets
import string

from .config import DEFAULT_CONFIG
from .errors import InvalidIVFormat, InvalidKeyFormat

logger = logging.getLogger(__name__)

ENCODINGS = ('hex', 'base64')
_HEX_DIGITS = frozenset(string.hexdigits)


class KeyMaterial:
    """Fixed-length secret buffer with explicit wiping."""
    SIZE = 0
    LABEL = "key material"
    ERROR = ValueError

    __slots__ = ('_secret', '_wiped')

    def __init__(self, data):
        if len(data) != self.SIZE:
            raise self.ERROR(f"{self.LABEL} must be {self.SIZE} bytes, got {len(data)}")
        self._secret = bytearray(data)
        self._wiped = False

    @classmethod
    def generate(cls):
        """Fill a new buffer from the CSPRNG."""
        material = cls(secrets.token_bytes(cls.SIZE))
        logger.debug(f"Generated {cls.SIZE * 8}-bit {cls.LABEL}")
        return material

    @classmethod
    def from_hex(cls, text: str):
        text = text.strip()
        if len(text) != cls.SIZE * 2 or not _HEX_DIGITS.issuperset(text):
            raise cls.ERROR(f"{cls.LABEL} must be {cls.SIZE * 2} hex characters")
        return cls(bytearray.fromhex(text))

    @classmethod
    def from_base64(cls, text: str):
        try:
            raw = base64.b64decode(text.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise cls.ERROR(f"{cls.LABEL} is not valid base64: {e}") from e
        if len(raw) != cls.SIZE:
            raise cls.ERROR(f"{cls.LABEL} must decode to {cls.SIZE} bytes, got {len(raw)}")
        return cls(raw)

    @property
    def secret(self) -> bytearray:
        """The live buffer (not a copy). Raises once the material has been wiped."""
        if self._wiped:
            raise ValueError(f"{self.LABEL} has been wiped")
        return self._secret

    @property
    def wiped(self) -> bool:
        return self._wiped

    def hex(self) -> str:
        return self.secret.hex()

    def base64(self) -> str:
        return base64.b64encode(self.secret).decode('ascii')

    def copy(self):
        return type(self)(self.secret)

    def wipe(self) -> None:
        """Zero-fill the buffer. Safe to call more than once."""
        for i in range(len(self._secret)):
            self._secret[i] = 0
        self._wiped = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.wipe()
        return False

    def __len__(self):
        return self.SIZE

    def __eq__(self, other):
        if not isinstance(other, KeyMaterial) or type(self) is not type(other):
            return NotImplemented
        return hmac.compare_digest(self.secret, other.secret)

    __hash__ = None

    def __repr__(self):
        state = "wiped" if self._wiped else f"{self.SIZE * 8}-bit"
        return f"<{type(self).__name__} {state}>"


class Key(KeyMaterial):
    """AES-256 key."""
    SIZE = DEFAULT_CONFIG.KEY_SIZE
    LABEL = "key"
    ERROR = InvalidKeyFormat

    __slots__ = ()


class InitializationVector(KeyMaterial):
    """CBC initialization vector. Not secret, but must be unique per key."""
    SIZE = DEFAULT_CONFIG.IV_SIZE
    LABEL = "IV"
    ERROR = InvalidIVFormat

    __slots__ = ()


def generate_key() -> Key:
    return Key.generate()


def generate_iv() -> InitializationVector:
    return InitializationVector.generate()


def _parse(cls, text, encoding):
    if not isinstance(text, str):
        raise cls.ERROR(f"{cls.LABEL} text must be a string, not {type(text).__name__}")
    if encoding == 'hex':
        return cls.from_hex(text)
    if encoding == 'base64':
        return cls.from_base64(text)
    raise ValueError(f"Unknown encoding {encoding!r}, expected one of {ENCODINGS}")


def parse_key(text: str, encoding: str = 'hex') -> Key:
    """Parse key text (64 hex characters by default)."""
    return _parse(Key, text, encoding)


def parse_iv(text: str, encoding: str = 'hex') -> InitializationVector:
    """Parse IV text (32 hex characters by default)."""
    return _parse(InitializationVector, text, encoding)


def to_display_string(material: KeyMaterial, encoding: str = 'hex') -> str:
    """Text form for display and clipboard copy. Does not touch the buffer."""
    if encoding == 'hex':
        return material.hex()
    if encoding == 'base64':
        return material.base64()
    raise ValueError(f"Unknown encoding {encoding!r}, expected one of {ENCODINGS}")
