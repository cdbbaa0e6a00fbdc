"""
cbcrypt command-line interface.

Usage:
    cbcrypt --generate-key --generate-iv
    cbcrypt --encrypt --file ./report.pdf --generate
    cbcrypt --encrypt --file ./report.pdf --key-file ./key.txt --iv 000102...0e0f
    cbcrypt --decrypt --file ./report.pdf.enc --key-file ./key.txt --iv-file ./iv.txt
    cbcrypt --decrypt --file ./report.pdf.enc --debug  # prompts for key and IV

The encrypted file does not contain the IV. Keep the IV printed or supplied at
encryption time; without it the file cannot be decrypted.
"""
import argparse
import getpass
import logging
import os
from importlib import metadata
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

from .aes import BACKENDS
from .config import PROGRAM_NAME, PROGRAM_VERSION, CryptConfig
from .errors import CryptError
from .keymaterial import ENCODINGS, generate_iv, generate_key, parse_iv, parse_key, to_display_string
from .pipeline import decrypt_file, encrypt_file

# Initialize colorama for colored console output
init(autoreset=True)

IV_WARNING = (
    f"{Fore.YELLOW}The IV is not stored in the encrypted file. "
    f"Keep it together with the key or the file cannot be decrypted.{Style.RESET_ALL}"
)


def truncate_middle(text: str, max_length: int) -> str:
    """Shorten long paths for status lines: ``/home/us....file.txt``."""
    if len(text) <= max_length:
        return text
    half = max_length // 2
    return f"{text[:half]}....{text[len(text) - half:]}"


class CryptCLI:
    """Command-line interface for cbcrypt."""

    def __init__(self, config: Optional[CryptConfig] = None):
        self.config = config or CryptConfig()
        self.logger = logging.getLogger(PROGRAM_NAME)
        self._log_handler = None

    def _configure_logging(self, log_file: str, debug: bool) -> None:
        """Attach a rotating file handler to the package logger."""
        self._log_handler = RotatingFileHandler(
            log_file,
            maxBytes=self.config.LOG_MAX_SIZE,
            backupCount=self.config.LOG_BACKUP_COUNT
        )
        self._log_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        self.logger.addHandler(self._log_handler)
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        versions = []
        for dist in ("cryptography", "colorama"):
            try:
                versions.append(f"{dist}={metadata.version(dist)}")
            except metadata.PackageNotFoundError:
                versions.append(f"{dist}=unknown")
        self.logger.info(f"Starting {PROGRAM_NAME} v{PROGRAM_VERSION}, dependencies: {', '.join(versions)}")

    def _close_logging(self) -> None:
        if self._log_handler is not None:
            self.logger.removeHandler(self._log_handler)
            self._log_handler.close()
            self._log_handler = None

    def _read_text_file(self, file_path: str, label: str) -> str:
        """
        Read key or IV text from a file, stripping whitespace.

        Raises:
            ValueError: If the file cannot be read.
        """
        path = Path(file_path).expanduser()
        try:
            if not path.is_file():
                raise ValueError(f"{label} file {path} does not exist")
            with path.open('r', encoding='utf-8') as f:
                text = f.read().strip()
            self.logger.debug(f"Read {label} text from file: {path}")
            return text
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read {label} from {path}: {e}")
            raise ValueError(f"Error reading {label} file {path}: {e}")

    def _material_text(self, value, file_path, label):
        if value:
            return value
        if file_path:
            return self._read_text_file(file_path, label)
        return getpass.getpass(f"{Fore.CYAN}Enter {label}: {Style.RESET_ALL}")

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=PROGRAM_NAME,
            description=(
                f"{PROGRAM_NAME}: file encryption/decryption with AES-256-CBC and PKCS#7 padding.\n"
                f"Version {PROGRAM_VERSION}\n"
                "Keys (256-bit) and IVs (128-bit) are entered as hex or generated.\n"
                "The IV is not stored in the output file; keep it with the key.\n"
                "The default native AES is pure Python; pass --backend openssl for large files."
            ),
            epilog=(
                "Examples:\n"
                f"  Generate material: {PROGRAM_NAME} --generate-key --generate-iv\n"
                f"  Encrypt with new material: {PROGRAM_NAME} --encrypt --file ./data.bin --generate\n"
                f"  Encrypt: {PROGRAM_NAME} --encrypt --file ./data.bin --key-file ./key.txt --iv <32 hex chars>\n"
                f"  Decrypt: {PROGRAM_NAME} --decrypt --file ./data.bin.enc --key-file ./key.txt --iv-file ./iv.txt\n"
                f"  Faster backend: {PROGRAM_NAME} --encrypt --file ./big.iso --generate --backend openssl"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument('--encrypt', action='store_true', help='Encrypt the file given with --file')
        parser.add_argument('--decrypt', action='store_true', help='Decrypt the file given with --file')
        parser.add_argument('--file', type=str, help='File to encrypt or decrypt')
        parser.add_argument('--output', type=str, help='Destination file (default: <file>.enc / <name>_decrypted.<ext>)')
        parser.add_argument('--key', type=str, help='Key text (64 hex characters)')
        parser.add_argument('--key-file', type=str, help='File containing the key text')
        parser.add_argument('--iv', type=str, help='IV text (32 hex characters)')
        parser.add_argument('--iv-file', type=str, help='File containing the IV text')
        parser.add_argument('--generate', action='store_true', help='With --encrypt: generate and print a new key and IV')
        parser.add_argument('--generate-key', action='store_true', help='Print a new random key')
        parser.add_argument('--generate-iv', action='store_true', help='Print a new random IV')
        parser.add_argument('--format', choices=ENCODINGS, default='hex', help='Text encoding for key and IV (default: hex)')
        parser.add_argument('--backend', choices=sorted(BACKENDS), default=self.config.DEFAULT_BACKEND,
                            help=f'AES implementation (default: {self.config.DEFAULT_BACKEND}). '
                                 'The native backend is pure Python and slow; use openssl for large files')
        parser.add_argument('--chunk-size', type=int, default=self.config.CHUNK_SIZE,
                            help=f'Read size in bytes, multiple of {self.config.BLOCK_SIZE} (default: {self.config.CHUNK_SIZE})')
        parser.add_argument('--log-file', type=str, default=self.config.LOG_FILE, help='Log file path')
        parser.add_argument('--verbose', action='store_true', help='Show progress on the console')
        parser.add_argument('--debug', action='store_true', help='Enable debug logging')
        return parser

    def _validate(self, args) -> Optional[str]:
        if args.encrypt and args.decrypt:
            return "Cannot specify both --encrypt and --decrypt"
        if not (args.encrypt or args.decrypt or args.generate_key or args.generate_iv):
            return "Specify --encrypt, --decrypt, --generate-key or --generate-iv"
        if (args.encrypt or args.decrypt) and not args.file:
            return "--file is required for --encrypt or --decrypt"
        if args.generate and not args.encrypt:
            return "--generate can only be used with --encrypt"
        if args.generate and (args.key or args.key_file or args.iv or args.iv_file):
            return "--generate cannot be combined with --key, --key-file, --iv or --iv-file"
        if args.key and args.key_file:
            return "Specify either --key or --key-file, not both"
        if args.iv and args.iv_file:
            return "Specify either --iv or --iv-file, not both"
        if args.chunk_size <= 0 or args.chunk_size % self.config.BLOCK_SIZE:
            return f"--chunk-size must be a positive multiple of {self.config.BLOCK_SIZE}"
        if args.file:
            file_path = Path(args.file).expanduser()
            if not file_path.exists():
                return f"File {file_path} does not exist"
            if not file_path.is_file():
                return f"{file_path} is not a file"
        return None

    def _print_material(self, label: str, material, encoding: str) -> None:
        print(f"{Fore.CYAN}{label}:{Style.RESET_ALL} {to_display_string(material, encoding)}")

    def _progress(self, fraction: float) -> None:
        print(f"\r{Fore.CYAN}Progress: {fraction * 100:5.1f}%{Style.RESET_ALL}", end='', flush=True)

    def _transform(self, args) -> int:
        mode = 'encrypt' if args.encrypt else 'decrypt'
        file_path = Path(args.file).expanduser()

        if args.generate:
            key, iv = generate_key(), generate_iv()
            self._print_material("Key", key, args.format)
            self._print_material("IV", iv, args.format)
            print(f"{Fore.YELLOW}Key and IV generated. Make sure to save them somewhere!{Style.RESET_ALL}")
            self.logger.info("Generated new key and IV for encryption")
        else:
            try:
                key_text = self._material_text(args.key, args.key_file, "key")
                iv_text = self._material_text(args.iv, args.iv_file, "IV")
            except (ValueError, EOFError) as e:
                self.logger.error(f"Failed to obtain key material: {e}")
                print(f"{Fore.RED}Error obtaining key material: {e}{Style.RESET_ALL}")
                return 1
            try:
                key = parse_key(key_text, args.format)
            except CryptError as e:
                self.logger.error(f"Rejected key: {e.kind}: {e}")
                print(f"{Fore.RED}{mode.capitalize()}ion failed [{e.kind}]: {e.description}{Style.RESET_ALL}")
                return 1
            try:
                iv = parse_iv(iv_text, args.format)
            except CryptError as e:
                key.wipe()
                self.logger.error(f"Rejected IV: {e.kind}: {e}")
                print(f"{Fore.RED}{mode.capitalize()}ion failed [{e.kind}]: {e.description}{Style.RESET_ALL}")
                return 1

        options = dict(
            config=self.config,
            chunk_size=args.chunk_size,
            backend=args.backend,
            progress_cb=self._progress if args.verbose else None,
        )
        operation = encrypt_file if args.encrypt else decrypt_file
        result = operation(file_path, key, iv, args.output, **options)
        if args.verbose:
            print()

        shown = truncate_middle(str(result.destination), self.config.DISPLAY_PATH_LENGTH)
        if not result.ok:
            error = result.error
            print(f"{Fore.RED}{mode.capitalize()}ion failed [{error.kind}]: {error.description}{Style.RESET_ALL}")
            print(f"{Fore.RED}  {error}{Style.RESET_ALL}")
            if result.destination.exists() and result.bytes_written:
                print(f"{Fore.YELLOW}Warning: {shown} is incomplete and should be deleted{Style.RESET_ALL}")
            return 1

        print(f"{Fore.GREEN}File successfully {mode}ed: {shown}{Style.RESET_ALL}")
        if args.encrypt:
            print(IV_WARNING)
        return 0

    def run(self, argv=None) -> int:
        """Parse command-line arguments and execute the program."""
        parser = self._build_parser()
        args = parser.parse_args(argv)

        error = self._validate(args)
        if error:
            print(f"{Fore.RED}Error: {error}{Style.RESET_ALL}")
            return 1

        self._configure_logging(os.path.expanduser(args.log_file), args.debug)
        try:
            if args.encrypt or args.decrypt:
                return self._transform(args)

            if args.generate_key:
                with generate_key() as key:
                    self._print_material("Key", key, args.format)
            if args.generate_iv:
                with generate_iv() as iv:
                    self._print_material("IV", iv, args.format)
            print(f"{Fore.YELLOW}Make sure to save it somewhere!{Style.RESET_ALL}")
            return 0
        finally:
            self._close_logging()


def main(argv=None) -> int:
    return CryptCLI().run(argv)


if __name__ == "__main__":
    raise SystemExit(main())
