"""
Error kinds raised by the cbcrypt engine.

Primitives raise these; the pipeline entry points catch them and hand them
back inside a TransformResult, so a shell can show ``error.kind`` verbatim.
"""


class CryptError(Exception):
    """Base class for every error the engine reports."""
    description = "Encryption engine error"

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidKeyFormat(CryptError, ValueError):
    description = "Key must be 256 bits (64 hex characters)"


class InvalidIVFormat(CryptError, ValueError):
    description = "IV must be 128 bits (32 hex characters)"


class FileNotFound(CryptError):
    description = "File not found"


class FileUnreadable(CryptError):
    description = "File cannot be read"


class FileUnwritable(CryptError):
    description = "Destination cannot be written"


class InvalidCiphertextLength(CryptError):
    description = "Ciphertext length is not a positive multiple of the block size"


class PaddingValidationError(CryptError):
    # Wrong key, wrong IV and corrupted ciphertext all end up here.
    description = "Wrong key or IV, or the file is corrupted"


class UnexpectedIOError(CryptError):
    description = "I/O error while processing the file"


class TransformCancelled(CryptError):
    description = "Operation cancelled"
