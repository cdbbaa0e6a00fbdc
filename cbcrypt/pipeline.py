"""
Streaming file encryption and decryption.

Output files are raw AES-256-CBC ciphertext with PKCS#7 padding. No IV,
header or version is written; whoever encrypts a file has to keep the IV to
decrypt it again.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .aes import new_block_cipher
from .chaining import CipherContext, Mode
from .config import DEFAULT_CONFIG, CryptConfig
from .errors import (
    CryptError,
    FileNotFound,
    FileUnreadable,
    FileUnwritable,
    InvalidCiphertextLength,
    TransformCancelled,
    UnexpectedIOError,
)
from .keymaterial import InitializationVector, Key, KeyMaterial, parse_iv, parse_key
from .padding import pad, unpad

logger = logging.getLogger(__name__)


@dataclass
class TransformResult:
    """Outcome of one file transformation."""
    mode: Mode
    source: Path
    destination: Path
    bytes_processed: int = 0
    bytes_written: int = 0
    error: Optional[CryptError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FileTransformPipeline:
    """
    Streams a source file through CBC and padding into a destination file.

    Args:
        config: CryptConfig instance with program constants.
        chunk_size: Read size in bytes, a positive multiple of the block size.
        backend: Block cipher backend name ('native' or 'openssl').
        progress_cb: Called with the processed fraction (0.0-1.0) after each chunk.
        stop_flag: ``threading.Event``-like object polled between chunk reads.
    """

    def __init__(
        self,
        config: CryptConfig = DEFAULT_CONFIG,
        chunk_size: Optional[int] = None,
        backend: Optional[str] = None,
        progress_cb: Optional[Callable[[float], None]] = None,
        stop_flag=None,
    ):
        self.config = config
        self.chunk_size = chunk_size or config.CHUNK_SIZE
        if self.chunk_size <= 0 or self.chunk_size % config.BLOCK_SIZE:
            raise ValueError(f"Chunk size must be a positive multiple of {config.BLOCK_SIZE}, got {self.chunk_size}")
        self.backend = backend or config.DEFAULT_BACKEND
        self.progress_cb = progress_cb
        self.stop_flag = stop_flag
        logger.debug(f"Initialized FileTransformPipeline: chunk_size={self.chunk_size}, backend={self.backend}")

    def run(self, mode: Mode, source, destination, key: Key, iv: InitializationVector) -> TransformResult:
        """
        Transform ``source`` into ``destination``.

        The caller keeps ownership of ``key`` and ``iv``; state derived from
        them here (round keys, chaining value) is wiped before returning.
        Engine errors are returned in ``result.error``, never raised. On
        failure the partially written destination is left in place and must
        be discarded.
        """
        mode = Mode(mode)
        result = TransformResult(mode, Path(source), Path(destination))
        logger.info(f"Starting {mode.value} of {result.source} -> {result.destination}")
        try:
            self._transform(result, key, iv)
        except CryptError as e:
            result.error = e
            logger.error(f"{mode.value.capitalize()} failed for {result.source}: {e.kind}: {e}")
        else:
            logger.info(
                f"Completed {mode.value} of {result.source}: "
                f"read {result.bytes_processed} bytes, wrote {result.bytes_written} bytes"
            )
        return result

    def _transform(self, result: TransformResult, key: Key, iv: InitializationVector) -> None:
        cipher = new_block_cipher(key.secret, self.backend)
        context = None
        try:
            context = CipherContext(cipher, iv.secret, result.mode)
            with self._open_source(result.source) as src:
                total = self._source_size(src, result.source)
                if result.mode is Mode.DECRYPT:
                    self._check_ciphertext_length(total, result.source)
                with self._open_destination(result.source, result.destination) as dst:
                    if result.mode is Mode.ENCRYPT:
                        self._encrypt_stream(src, dst, context, result, total)
                    else:
                        self._decrypt_stream(src, dst, context, result, total)
        finally:
            if context is not None:
                context.wipe()
            else:
                cipher.wipe()

    def _encrypt_stream(self, src, dst, context, result, total):
        bs = self.config.BLOCK_SIZE
        pending = b''
        for chunk in self._chunks(src, result, total):
            data = pending + chunk
            cut = len(data) - len(data) % bs
            if cut:
                self._write(dst, context.update(data[:cut]), result)
            pending = data[cut:]
        self._write(dst, context.update(pad(pending)), result)

    def _decrypt_stream(self, src, dst, context, result, total):
        bs = self.config.BLOCK_SIZE
        carry = b''
        held = b''  # last decrypted block, kept back for padding validation
        for chunk in self._chunks(src, result, total):
            data = carry + chunk
            cut = len(data) - len(data) % bs
            carry = data[cut:]
            if cut:
                out = held + context.update(data[:cut])
                self._write(dst, out[:-bs], result)
                held = out[-bs:]
        if carry or not held:
            # Source changed size while it was being read.
            raise InvalidCiphertextLength(
                f"{result.source}: read {result.bytes_processed} bytes, not a positive multiple of {bs}"
            )
        self._write(dst, unpad(held), result)

    def _chunks(self, src, result, total):
        while True:
            if self.stop_flag is not None and self.stop_flag.is_set():
                raise TransformCancelled(f"{result.mode.value.capitalize()} of {result.source} cancelled by user")
            try:
                chunk = src.read(self.chunk_size)
            except OSError as e:
                raise UnexpectedIOError(f"Error reading {result.source}: {e}") from e
            if not chunk:
                return
            result.bytes_processed += len(chunk)
            yield chunk
            if self.progress_cb:
                self.progress_cb(min(result.bytes_processed / total, 1.0) if total else 1.0)

    def _check_ciphertext_length(self, size, path):
        bs = self.config.BLOCK_SIZE
        if size == 0 or size % bs:
            raise InvalidCiphertextLength(f"{path} is {size} bytes, expected a positive multiple of {bs}")

    @staticmethod
    def _source_size(src, path) -> int:
        try:
            return os.fstat(src.fileno()).st_size
        except OSError as e:
            raise UnexpectedIOError(f"Error reading size of {path}: {e}") from e

    @staticmethod
    def _open_source(path: Path):
        try:
            return path.open('rb')
        except FileNotFoundError as e:
            raise FileNotFound(f"File {path} does not exist") from e
        except OSError as e:
            raise FileUnreadable(f"Cannot open {path} for reading: {e}") from e

    @staticmethod
    def _open_destination(source: Path, destination: Path):
        try:
            same = destination.exists() and os.path.samefile(source, destination)
        except OSError as e:
            raise FileUnwritable(f"Cannot check destination {destination}: {e}") from e
        if same:
            raise FileUnwritable(f"Destination {destination} is the source file")
        if destination.exists():
            logger.warning(f"Overwriting existing file: {destination}")
        try:
            return destination.open('wb')
        except OSError as e:
            raise FileUnwritable(f"Cannot open {destination} for writing: {e}") from e

    @staticmethod
    def _write(dst, data, result):
        if not data:
            return
        try:
            dst.write(data)
        except OSError as e:
            raise UnexpectedIOError(f"Error writing {result.destination}: {e}") from e
        result.bytes_written += len(data)


def encrypted_path(path, config: CryptConfig = DEFAULT_CONFIG) -> Path:
    """``notes.txt`` -> ``notes.txt.enc``."""
    path = Path(path)
    return path.with_name(path.name + config.ENCRYPTED_SUFFIX)


def decrypted_path(path, config: CryptConfig = DEFAULT_CONFIG) -> Path:
    """``notes.txt.enc`` -> ``notes_decrypted.txt``; anything else gets the marker appended."""
    path = Path(path)
    name = path.name
    if name.endswith(config.ENCRYPTED_SUFFIX) and len(name) > len(config.ENCRYPTED_SUFFIX):
        stem, dot, ext = name[:-len(config.ENCRYPTED_SUFFIX)].rpartition('.')
        if dot and stem:
            return path.with_name(f"{stem}{config.DECRYPTED_MARKER}.{ext}")
        return path.with_name(name[:-len(config.ENCRYPTED_SUFFIX)] + config.DECRYPTED_MARKER)
    return path.with_name(name + config.DECRYPTED_MARKER)


def _run_request(mode, path, key, iv, output, options):
    config = options.get('config', DEFAULT_CONFIG)
    source = Path(path)
    if output is None:
        output = encrypted_path(source, config) if mode is Mode.ENCRYPT else decrypted_path(source, config)
    # Material objects belong to the request from the start, parsed text once it parses.
    owned = [material for material in (key, iv) if isinstance(material, KeyMaterial)]
    try:
        try:
            if not isinstance(key, KeyMaterial):
                key = parse_key(key)
                owned.append(key)
            if not isinstance(iv, KeyMaterial):
                iv = parse_iv(iv)
                owned.append(iv)
        except CryptError as e:
            logger.error(f"{mode.value.capitalize()} of {source} rejected: {e.kind}: {e}")
            return TransformResult(mode, source, Path(output), error=e)
        return FileTransformPipeline(**options).run(mode, source, output, key, iv)
    finally:
        for material in owned:
            material.wipe()


def encrypt_file(path, key, iv, output=None, **options) -> TransformResult:
    """
    Encrypt ``path`` to ``output`` (default ``path + '.enc'``).

    Args:
        path: File to encrypt.
        key: Key object or 64-character hex text.
        iv: InitializationVector object or 32-character hex text.
        output: Destination path.
        **options: Passed to FileTransformPipeline.

    Returns:
        TransformResult: ``error`` is set instead of raising. The key and IV
        belong to this request and are wiped before it returns.
    """
    return _run_request(Mode.ENCRYPT, path, key, iv, output, options)


def decrypt_file(path, key, iv, output=None, **options) -> TransformResult:
    """
    Decrypt ``path`` to ``output`` (default: see :func:`decrypted_path`).

    Same contract as :func:`encrypt_file`.
    """
    return _run_request(Mode.DECRYPT, path, key, iv, output, options)
