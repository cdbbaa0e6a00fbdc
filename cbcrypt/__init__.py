"""
cbcrypt - AES-256-CBC file encryption with explicit key and IV material.

Overview:
- Encrypts files with AES-256 in CBC mode and PKCS#7 padding.
- Keys (256-bit) and IVs (128-bit) are generated from a CSPRNG or entered as hex.
- Streams files in block-aligned chunks; memory use does not grow with file size.
- Output is raw ciphertext: the IV is NOT stored in the file, keep it yourself.
- Padding is the only integrity check. This is not authenticated encryption.

Usage:
    from cbcrypt import generate_key, generate_iv, to_display_string, encrypt_file

    key, iv = generate_key(), generate_iv()
    print(to_display_string(key), to_display_string(iv))
    result = encrypt_file("report.pdf", key, iv)
    if not result.ok:
        print(result.error.kind, result.error)
"""
import logging

from .aes import RoundKeySchedule, decrypt_block, encrypt_block, expand_key, new_block_cipher
from .chaining import CipherContext, Mode
from .config import PROGRAM_NAME, PROGRAM_VERSION, CryptConfig
from .errors import (
    CryptError,
    FileNotFound,
    FileUnreadable,
    FileUnwritable,
    InvalidCiphertextLength,
    InvalidIVFormat,
    InvalidKeyFormat,
    PaddingValidationError,
    TransformCancelled,
    UnexpectedIOError,
)
from .keymaterial import (
    InitializationVector,
    Key,
    generate_iv,
    generate_key,
    parse_iv,
    parse_key,
    to_display_string,
)
from .padding import pad, unpad
from .pipeline import (
    FileTransformPipeline,
    TransformResult,
    decrypt_file,
    decrypted_path,
    encrypt_file,
    encrypted_path,
)

__version__ = PROGRAM_VERSION

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "PROGRAM_NAME",
    "CryptConfig",
    "Key",
    "InitializationVector",
    "generate_key",
    "generate_iv",
    "parse_key",
    "parse_iv",
    "to_display_string",
    "RoundKeySchedule",
    "expand_key",
    "encrypt_block",
    "decrypt_block",
    "new_block_cipher",
    "Mode",
    "CipherContext",
    "pad",
    "unpad",
    "FileTransformPipeline",
    "TransformResult",
    "encrypt_file",
    "decrypt_file",
    "encrypted_path",
    "decrypted_path",
    "CryptError",
    "InvalidKeyFormat",
    "InvalidIVFormat",
    "FileNotFound",
    "FileUnreadable",
    "FileUnwritable",
    "InvalidCiphertextLength",
    "PaddingValidationError",
    "UnexpectedIOError",
    "TransformCancelled",
]
