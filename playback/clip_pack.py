"""
Encrypted clip packs.

Bundles audio files into a single file for distribution:
- AES-256-GCM per entry and for the entry table
- PBKDF2-SHA256 key derivation, iteration count stored in the header
- zlib compression before encryption

Layout:
    MAGIC (8) | version u16 | iterations u32 | salt (32) | table nonce (12)
    | table size u32 | encrypted table | entry blob

Usage:
    python -m playback.clip_pack pack assets/audio game.clips
    python -m playback.clip_pack list game.clips
"""

import json
import os
import secrets
import struct
import sys
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from playback.logging import audio_log
from state.constants import AUDIO_EXTENSIONS, CLIP_PACK_FILE, CLIP_PACK_PASSWORD_ENV

MAGIC = b'\x89CLP\r\n\x1a\n'
VERSION = 1

SALT_SIZE = 32
NONCE_SIZE = 12
KEY_SIZE = 32
KDF_ITERATIONS = 600000
COMPRESSION_LEVEL = 6

_HEADER = struct.Struct('<HI')


class ClipPackError(Exception):
    """Raised when a pack cannot be written or read."""


def derive_key(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive the 256-bit pack key from a password.

    Args:
        password: Pack password
        salt: Random per-pack salt
        iterations: PBKDF2 iteration count

    Returns:
        32-byte key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode('utf-8'))


def _seal(data: bytes, key: bytes) -> tuple:
    nonce = secrets.token_bytes(NONCE_SIZE)
    return nonce, AESGCM(key).encrypt(nonce, zlib.compress(data, COMPRESSION_LEVEL), None)


def _open_sealed(nonce: bytes, ciphertext: bytes, key: bytes) -> bytes:
    return zlib.decompress(AESGCM(key).decrypt(nonce, ciphertext, None))


def _normalize(path: str) -> str:
    return path.replace('\\', '/')


class ClipPackWriter:
    """Collects audio files and writes them as an encrypted pack."""

    def __init__(self, iterations: int = KDF_ITERATIONS):
        """Initialize the writer.

        Args:
            iterations: PBKDF2 iteration count recorded in the pack
        """
        self.iterations = iterations
        self.entries: Dict[str, bytes] = {}

    def add(self, path: str, data: bytes):
        """Add one entry under a relative path like 'sfx/click.wav'."""
        self.entries[_normalize(path)] = bytes(data)

    def add_directory(self, source_dir: str, extensions: Iterable[str] = AUDIO_EXTENSIONS) -> int:
        """Add every audio file below a directory.

        Args:
            source_dir: Root directory; entry paths are relative to it
            extensions: File extensions to include (case-insensitive)

        Returns:
            Number of files added
        """
        root = Path(source_dir)
        suffixes = tuple(ext.lower() for ext in extensions)
        added = 0
        for dirpath, _dirs, files in os.walk(root):
            for filename in sorted(files):
                if not filename.lower().endswith(suffixes):
                    continue
                filepath = Path(dirpath) / filename
                self.add(str(filepath.relative_to(root)), filepath.read_bytes())
                added += 1
        audio_log('INFO', "Collected clip files", {'source': str(root), 'files': added})
        return added

    def write(self, output_file: str, password: str) -> int:
        """Encrypt every entry and write the pack.

        Returns:
            Size of the written pack in bytes

        Raises:
            ClipPackError: If there is nothing to write or no password
        """
        if not self.entries:
            raise ClipPackError("no files to pack")
        if not password:
            raise ClipPackError("a password is required")

        salt = secrets.token_bytes(SALT_SIZE)
        key = derive_key(password, salt, self.iterations)

        table = {}
        blob = bytearray()
        for path, content in self.entries.items():
            nonce, ciphertext = _seal(content, key)
            table[path] = {
                'offset': len(blob),
                'size': len(ciphertext),
                'nonce': nonce.hex(),
                'original_size': len(content),
            }
            blob += ciphertext

        table_nonce, table_encrypted = _seal(json.dumps(table).encode('utf-8'), key)

        with open(output_file, 'wb') as f:
            f.write(MAGIC)
            f.write(_HEADER.pack(VERSION, self.iterations))
            f.write(salt)
            f.write(table_nonce)
            f.write(struct.pack('<I', len(table_encrypted)))
            f.write(table_encrypted)
            f.write(blob)

        size = os.path.getsize(output_file)
        audio_log('INFO', "Clip pack written", {
            'file': str(output_file),
            'entries': len(table),
            'bytes': size
        })
        return size


class ClipPack:
    """Reads clips out of an encrypted pack at runtime."""

    def __init__(self, pack_file: str = CLIP_PACK_FILE):
        self.pack_file = Path(pack_file)
        self.table: Dict[str, dict] = {}
        self._by_stem: Dict[str, str] = {}
        self._data_offset = 0
        self._key: Optional[bytes] = None
        self._file: Optional[BinaryIO] = None

    def open(self, password: str) -> bool:
        """Open the pack and decrypt its entry table.

        Args:
            password: Pack password

        Returns:
            True if the pack is ready for reading
        """
        if not self.pack_file.exists():
            audio_log('WARNING', "Clip pack not found", {'file': str(self.pack_file)})
            return False

        try:
            self._file = open(self.pack_file, 'rb')
            if self._file.read(len(MAGIC)) != MAGIC:
                raise ClipPackError("not a clip pack")

            version, iterations = _HEADER.unpack(self._file.read(_HEADER.size))
            if version > VERSION:
                raise ClipPackError(f"unsupported pack version {version}")

            salt = self._file.read(SALT_SIZE)
            table_nonce = self._file.read(NONCE_SIZE)
            table_size = struct.unpack('<I', self._file.read(4))[0]
            table_encrypted = self._file.read(table_size)
            self._data_offset = self._file.tell()

            self._key = derive_key(password, salt, iterations)
            self.table = json.loads(_open_sealed(table_nonce, table_encrypted, self._key))
        except Exception as e:
            audio_log('ERROR', "Failed to open clip pack", {'file': str(self.pack_file), 'error': str(e) or type(e).__name__})
            self.close()
            return False

        self._by_stem = {}
        for path in self.table:
            stem = Path(path).stem.lower()
            self._by_stem.setdefault(stem, path)

        audio_log('INFO', "Clip pack opened", {'file': str(self.pack_file), 'entries': len(self.table)})
        return True

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def close(self):
        if self._file:
            self._file.close()
            self._file = None
        self._key = None
        self.table = {}
        self._by_stem = {}

    def get(self, path: str) -> Optional[bytes]:
        """Decrypt one entry by its path. Returns None if it is missing."""
        path = _normalize(path)
        entry = self.table.get(path)
        if entry is None or not self.is_open:
            return None

        self._file.seek(self._data_offset + entry['offset'])
        ciphertext = self._file.read(entry['size'])
        try:
            return _open_sealed(bytes.fromhex(entry['nonce']), ciphertext, self._key)
        except Exception as e:
            audio_log('ERROR', "Failed to decrypt pack entry", {'path': path, 'error': str(e) or type(e).__name__})
            return None

    def find(self, name: str) -> Optional[str]:
        """Entry path whose file stem matches a clip name (case-insensitive)."""
        return self._by_stem.get(name.lower())

    def list_files(self) -> List[str]:
        return sorted(self.table)

    def __contains__(self, path: str) -> bool:
        return _normalize(path) in self.table

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _password(prompt: str) -> str:
    password = os.environ.get(CLIP_PACK_PASSWORD_ENV)
    if password:
        return password
    import getpass
    return getpass.getpass(prompt)


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point: pack a directory or list a pack."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in ('pack', 'list'):
        print("Usage:")
        print("  python -m playback.clip_pack pack [source_dir] [output_file]")
        print("  python -m playback.clip_pack list [pack_file]")
        print(f"The password is read from ${CLIP_PACK_PASSWORD_ENV} or prompted for.")
        return 2

    if argv[0] == 'pack':
        source_dir = argv[1] if len(argv) > 1 else 'assets/audio'
        output_file = argv[2] if len(argv) > 2 else CLIP_PACK_FILE
        writer = ClipPackWriter()
        if not writer.add_directory(source_dir):
            print(f"ERROR: no audio files under {source_dir}")
            return 1
        password = _password("Pack password: ")
        if len(password) < 8:
            print("ERROR: password must be at least 8 characters")
            return 1
        size = writer.write(output_file, password)
        print(f"Wrote {output_file}: {len(writer.entries)} clips, {size:,} bytes")
        return 0

    pack_file = argv[1] if len(argv) > 1 else CLIP_PACK_FILE
    pack = ClipPack(pack_file)
    if not pack.open(_password("Pack password: ")):
        print(f"ERROR: could not open {pack_file}")
        return 1
    with pack:
        for path in pack.list_files():
            print(f"  {path} ({pack.table[path]['original_size']:,} bytes)")
        print(f"Total: {len(pack.table)} clips")
    return 0


if __name__ == '__main__':
    sys.exit(main())
