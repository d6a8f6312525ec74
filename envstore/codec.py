"""
Default record codec: JSON, encrypted with AES-GCM when a key is supplied.

Every record file is a JSON object tagged with ``"envstore": 1``:

    {"envstore": 1, "plain": <value>}                     no key
    {"envstore": 1, "kdf": ..., "cipher": ..., "salt": ...,
     "nonce": ..., "ciphertext": ...}                     encrypted

The record itself is always nested inside that wrapper, so its own keys never
affect how the file is read.
"""

import base64
import dataclasses
import json
import os
import secrets
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import DecodeFailed

ENVELOPE_VERSION = 1
KDF_NAME = "scrypt"
CIPHER_NAME = "aes-256-gcm"
KEY_LEN = 32
SALT_LEN = 16
NONCE_LEN = 12

# scrypt cost parameters (interactive use)
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

FILE_MODE = 0o600


def derive_key(secret: bytes, salt: bytes) -> bytes:
    """Derive an AES key from caller key material."""
    kdf = Scrypt(salt=salt, length=KEY_LEN, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret)


def encrypt(plaintext: bytes, secret: bytes) -> dict:
    """Encrypt ``plaintext`` and return the envelope dict."""
    salt = secrets.token_bytes(SALT_LEN)
    nonce = secrets.token_bytes(NONCE_LEN)
    ct = AESGCM(derive_key(secret, salt)).encrypt(nonce, plaintext, None)
    return {
        "envstore": ENVELOPE_VERSION,
        "kdf": KDF_NAME,
        "cipher": CIPHER_NAME,
        "salt": base64.b64encode(salt).decode("ascii"),
        "nonce": base64.b64encode(nonce).decode("ascii"),
        "ciphertext": base64.b64encode(ct).decode("ascii"),
    }


def is_envelope(data: Any) -> bool:
    """True for the outer object of an encrypted record file."""
    return isinstance(data, dict) and "envstore" in data and "ciphertext" in data


def decrypt(envelope: dict, secret: bytes) -> bytes:
    """
    Decrypt an envelope produced by encrypt().

    Raises:
        DecodeFailed: If the key is missing or wrong, or the envelope is malformed
    """
    if not secret:
        raise DecodeFailed("environment is encrypted but no key was supplied")
    version = envelope.get("envstore")
    if version != ENVELOPE_VERSION:
        raise DecodeFailed(f"unsupported envelope version: {version!r}")
    if envelope.get("kdf") != KDF_NAME or envelope.get("cipher") != CIPHER_NAME:
        raise DecodeFailed(
            f"unsupported encryption: {envelope.get('kdf')!r}/{envelope.get('cipher')!r}"
        )
    try:
        salt = base64.b64decode(envelope["salt"], validate=True)
        nonce = base64.b64decode(envelope["nonce"], validate=True)
        ct = base64.b64decode(envelope["ciphertext"], validate=True)
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeFailed(f"malformed envelope: {e}") from e
    try:
        return AESGCM(derive_key(secret, salt)).decrypt(nonce, ct, None)
    except (InvalidTag, ValueError) as e:
        raise DecodeFailed("cannot decrypt environment (wrong key?)") from e


class JsonCodec:
    """
    Codec for JSON-compatible records.

    Args:
        record_type: Optional dataclass; records are converted with asdict()
            on write and rebuilt with record_type(**data) on read
        indent: JSON indentation for unencrypted files
    """

    def __init__(self, record_type: Optional[type] = None, indent: int = 2):
        if record_type is not None and not dataclasses.is_dataclass(record_type):
            raise TypeError(f"record_type must be a dataclass, got {record_type!r}")
        self._record_type = record_type
        self._indent = indent

    def _to_data(self, value: Any) -> Any:
        if self._record_type is not None and dataclasses.is_dataclass(value):
            return dataclasses.asdict(value)
        return value

    def _from_data(self, data: Any) -> Any:
        if self._record_type is None:
            return data
        if not isinstance(data, dict):
            raise DecodeFailed(f"expected an object for {self._record_type.__name__}")
        try:
            return self._record_type(**data)
        except TypeError as e:
            raise DecodeFailed(f"cannot build {self._record_type.__name__}: {e}") from e

    def write(self, path: Path, value: Any, key: bytes) -> None:
        """Serialize, optionally encrypt, and replace the file at ``path``."""
        data = self._to_data(value)
        if key:
            payload = json.dumps(data, ensure_ascii=False).encode("utf-8")
            text = json.dumps(encrypt(payload, key))
        else:
            wrapped = {"envstore": ENVELOPE_VERSION, "plain": data}
            text = json.dumps(wrapped, ensure_ascii=False, indent=self._indent)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")

    def read(self, path: Path, key: bytes) -> Any:
        """
        Read, optionally decrypt, and deserialize the file at ``path``.

        Raises:
            DecodeFailed: If the content cannot be decrypted or parsed
        """
        raw = Path(path).read_bytes()
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise DecodeFailed(f"{path}: not valid JSON: {e}") from e
        if not isinstance(data, dict) or "envstore" not in data:
            raise DecodeFailed(f"{path}: not an envstore record file")

        if "plain" in data:
            if data["envstore"] != ENVELOPE_VERSION:
                raise DecodeFailed(f"unsupported envelope version: {data['envstore']!r}")
            return self._from_data(data["plain"])

        if not is_envelope(data):
            raise DecodeFailed(f"{path}: malformed envelope: no ciphertext")
        plaintext = decrypt(data, key)
        try:
            data = json.loads(plaintext.decode("utf-8"))
        except ValueError as e:
            raise DecodeFailed(f"{path}: decrypted content is not valid JSON") from e
        return self._from_data(data)
