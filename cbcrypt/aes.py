"""
AES-256 block cipher (FIPS-197).

The native backend is a table-driven pure-Python implementation. Its S-boxes
and GF(2^8) multiplication tables are computed once at import and stored as
immutable ``bytes``; nothing in this module writes to them afterwards.

State layout: 16 bytes, column-major (byte ``i`` is row ``i % 4``, column
``i // 4``), which matches the byte order of the input block and of the
expanded round-key words.

The ``openssl`` backend runs the same single-block transform through the
``cryptography`` package. Chaining always happens in :mod:`cbcrypt.chaining`.
"""
import logging

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import DEFAULT_CONFIG
from .errors import InvalidKeyFormat

logger = logging.getLogger(__name__)

BLOCK_SIZE = DEFAULT_CONFIG.BLOCK_SIZE
KEY_SIZE = DEFAULT_CONFIG.KEY_SIZE
NK = KEY_SIZE // 4  # Key length in 32-bit words
NR = 14  # Rounds for AES-256
SCHEDULE_SIZE = BLOCK_SIZE * (NR + 1)  # 240 bytes of round keys


def _xtime(a):
    a <<= 1
    return (a ^ 0x11B) if a & 0x100 else a


def _gf_mul(a, b):
    result = 0
    while b:
        if b & 1:
            result ^= a
        a = _xtime(a)
        b >>= 1
    return result


def _build_sboxes():
    # exp/log tables over generator 3
    exp = [0] * 255
    log = [0] * 256
    x = 1
    for i in range(255):
        exp[i] = x
        log[x] = i
        x = _gf_mul(x, 3)

    sbox = bytearray(256)
    for a in range(256):
        b = exp[(255 - log[a]) % 255] if a else 0
        s = b
        for shift in range(1, 5):
            s ^= ((b << shift) | (b >> (8 - shift))) & 0xFF
        sbox[a] = s ^ 0x63
    inv_sbox = bytearray(256)
    for a, s in enumerate(sbox):
        inv_sbox[s] = a
    return bytes(sbox), bytes(inv_sbox)


SBOX, INV_SBOX = _build_sboxes()
MUL2 = bytes(_gf_mul(x, 2) for x in range(256))
MUL3 = bytes(_gf_mul(x, 3) for x in range(256))
MUL9 = bytes(_gf_mul(x, 9) for x in range(256))
MUL11 = bytes(_gf_mul(x, 11) for x in range(256))
MUL13 = bytes(_gf_mul(x, 13) for x in range(256))
MUL14 = bytes(_gf_mul(x, 14) for x in range(256))

# ShiftRows as a gather: new[i] = old[SHIFT_ROWS[i]]
SHIFT_ROWS = tuple(((i // 4 + i % 4) % 4) * 4 + i % 4 for i in range(16))
INV_SHIFT_ROWS = tuple(((i // 4 - i % 4) % 4) * 4 + i % 4 for i in range(16))

RCON = (0x01, 0x02, 0x04, 0x08, 0x10, 0x20, 0x40)


class RoundKeySchedule:
    """Expanded AES-256 key: 15 round keys of 16 bytes."""
    __slots__ = ('round_keys',)

    def __init__(self, round_keys: bytearray):
        if len(round_keys) != SCHEDULE_SIZE:
            raise ValueError(f"Round key schedule must be {SCHEDULE_SIZE} bytes")
        self.round_keys = round_keys

    @property
    def rounds(self) -> int:
        return NR

    def round_key(self, rnd: int) -> bytearray:
        return self.round_keys[rnd * BLOCK_SIZE:(rnd + 1) * BLOCK_SIZE]

    def wipe(self) -> None:
        for i in range(len(self.round_keys)):
            self.round_keys[i] = 0

    def __eq__(self, other):
        if not isinstance(other, RoundKeySchedule):
            return NotImplemented
        return self.round_keys == other.round_keys

    __hash__ = None

    def __repr__(self):
        return f"<RoundKeySchedule rounds={NR}>"


def expand_key(key) -> RoundKeySchedule:
    """
    Expand a 32-byte key into the AES-256 round-key schedule.

    Args:
        key: 32 bytes (bytes, bytearray or memoryview).

    Returns:
        RoundKeySchedule: Deterministic for a given key.

    Raises:
        InvalidKeyFormat: If the key is not 32 bytes.
    """
    if len(key) != KEY_SIZE:
        raise InvalidKeyFormat(f"AES-256 key must be {KEY_SIZE} bytes, got {len(key)}")
    w = bytearray(SCHEDULE_SIZE)
    w[:KEY_SIZE] = key
    for i in range(NK, SCHEDULE_SIZE // 4):
        t0, t1, t2, t3 = w[4 * i - 4:4 * i]
        if i % NK == 0:
            t0, t1, t2, t3 = SBOX[t1] ^ RCON[i // NK - 1], SBOX[t2], SBOX[t3], SBOX[t0]
        elif i % NK == 4:
            t0, t1, t2, t3 = SBOX[t0], SBOX[t1], SBOX[t2], SBOX[t3]
        j = 4 * (i - NK)
        w[4 * i] = w[j] ^ t0
        w[4 * i + 1] = w[j + 1] ^ t1
        w[4 * i + 2] = w[j + 2] ^ t2
        w[4 * i + 3] = w[j + 3] ^ t3
    return RoundKeySchedule(w)


def _check_block(block):
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"Block must be {BLOCK_SIZE} bytes, got {len(block)}")


def _mix_columns(s):
    out = [0] * 16
    for c in range(0, 16, 4):
        a0, a1, a2, a3 = s[c], s[c + 1], s[c + 2], s[c + 3]
        out[c] = MUL2[a0] ^ MUL3[a1] ^ a2 ^ a3
        out[c + 1] = a0 ^ MUL2[a1] ^ MUL3[a2] ^ a3
        out[c + 2] = a0 ^ a1 ^ MUL2[a2] ^ MUL3[a3]
        out[c + 3] = MUL3[a0] ^ a1 ^ a2 ^ MUL2[a3]
    return out


def _inv_mix_columns(s):
    out = [0] * 16
    for c in range(0, 16, 4):
        a0, a1, a2, a3 = s[c], s[c + 1], s[c + 2], s[c + 3]
        out[c] = MUL14[a0] ^ MUL11[a1] ^ MUL13[a2] ^ MUL9[a3]
        out[c + 1] = MUL9[a0] ^ MUL14[a1] ^ MUL11[a2] ^ MUL13[a3]
        out[c + 2] = MUL13[a0] ^ MUL9[a1] ^ MUL14[a2] ^ MUL11[a3]
        out[c + 3] = MUL11[a0] ^ MUL13[a1] ^ MUL9[a2] ^ MUL14[a3]
    return out


def encrypt_block(schedule: RoundKeySchedule, block) -> bytes:
    """Forward cipher on one 16-byte block."""
    _check_block(block)
    rk = schedule.round_keys
    s = [b ^ k for b, k in zip(block, rk[:16])]
    for rnd in range(1, NR):
        s = _mix_columns([SBOX[s[j]] for j in SHIFT_ROWS])
        off = rnd * 16
        s = [b ^ k for b, k in zip(s, rk[off:off + 16])]
    s = [SBOX[s[j]] for j in SHIFT_ROWS]
    off = NR * 16
    return bytes(b ^ k for b, k in zip(s, rk[off:off + 16]))


def decrypt_block(schedule: RoundKeySchedule, block) -> bytes:
    """Inverse cipher on one 16-byte block."""
    _check_block(block)
    rk = schedule.round_keys
    off = NR * 16
    s = [b ^ k for b, k in zip(block, rk[off:off + 16])]
    for rnd in range(NR - 1, 0, -1):
        s = [INV_SBOX[s[j]] for j in INV_SHIFT_ROWS]
        off = rnd * 16
        s = _inv_mix_columns([b ^ k for b, k in zip(s, rk[off:off + 16])])
    s = [INV_SBOX[s[j]] for j in INV_SHIFT_ROWS]
    return bytes(b ^ k for b, k in zip(s, rk[:16]))


class NativeAES256:
    """Pure-Python AES-256 keyed with one round-key schedule."""
    name = 'native'

    def __init__(self, key):
        self._schedule = expand_key(key)

    def encrypt_block(self, block) -> bytes:
        return encrypt_block(self._schedule, block)

    def decrypt_block(self, block) -> bytes:
        return decrypt_block(self._schedule, block)

    def wipe(self) -> None:
        self._schedule.wipe()


class OpenSSLAES256:
    """
    AES-256 single-block transform through the ``cryptography`` package.

    The key copy held by OpenSSL is released with the cipher contexts; it
    cannot be zero-filled from Python.
    """
    name = 'openssl'

    def __init__(self, key):
        if len(key) != KEY_SIZE:
            raise InvalidKeyFormat(f"AES-256 key must be {KEY_SIZE} bytes, got {len(key)}")
        cipher = Cipher(algorithms.AES(bytes(key)), modes.ECB())
        self._encryptor = cipher.encryptor()
        self._decryptor = cipher.decryptor()

    def encrypt_block(self, block) -> bytes:
        _check_block(block)
        return self._encryptor.update(bytes(block))

    def decrypt_block(self, block) -> bytes:
        _check_block(block)
        return self._decryptor.update(bytes(block))

    def wipe(self) -> None:
        self._encryptor = None
        self._decryptor = None


BACKENDS = {
    NativeAES256.name: NativeAES256,
    OpenSSLAES256.name: OpenSSLAES256,
}


def new_block_cipher(key, backend: str = DEFAULT_CONFIG.DEFAULT_BACKEND):
    """
    Build a keyed AES-256 block cipher.

    Args:
        key: 32-byte key buffer.
        backend: 'native' or 'openssl'.

    Raises:
        ValueError: If the backend is unknown.
        InvalidKeyFormat: If the key is not 32 bytes.
    """
    try:
        factory = BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown cipher backend {backend!r}, expected one of {sorted(BACKENDS)}") from None
    logger.debug(f"Using {backend} AES-256 backend")
    return factory(key)
