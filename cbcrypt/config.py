"""Program constants for cbcrypt."""
from dataclasses import dataclass

PROGRAM_NAME = "cbcrypt"
PROGRAM_VERSION = "1.0.0"


@dataclass(frozen=True)
class CryptConfig:
    """Configuration constants for cbcrypt."""
    BLOCK_SIZE: int = 16  # AES block size (bytes)
    KEY_SIZE: int = 32  # AES-256 key (bytes)
    IV_SIZE: int = 16  # CBC initialization vector, one block (bytes)
    CHUNK_SIZE: int = 64 * 1024  # Read size for streaming, multiple of BLOCK_SIZE
    ENCRYPTED_SUFFIX: str = '.enc'  # Appended to encrypted output files
    DECRYPTED_MARKER: str = '_decrypted'  # Inserted before the extension on decryption
    DEFAULT_BACKEND: str = 'native'  # Block cipher backend: 'native' or 'openssl'
    LOG_FILE: str = 'cbcrypt.log'  # Default log file
    LOG_MAX_SIZE: int = 10 * 1024 * 1024  # Max log file size (10 MB)
    LOG_BACKUP_COUNT: int = 3  # Number of backup log files
    DISPLAY_PATH_LENGTH: int = 36  # Paths longer than this are middle-truncated in status lines


DEFAULT_CONFIG = CryptConfig()
