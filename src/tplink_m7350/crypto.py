"""Hashing and payload encryption for the M7350 web gateway.

All firmware versions authenticate with an MD5 digest of
``password:nonce``. Newer firmware additionally wraps every request:

1. The login challenge returns an RSA public key (``rsaMod``,
   ``rsaPubKey``) and a sequence number (``seqNum``)
2. The client picks a random AES-128 key and IV (16 decimal digits each)
3. The JSON request is AES-CBC encrypted and base64 encoded
4. A signature ``key=<k>&iv=<iv>&h=<hash>&s=<seq + len(data)>`` is RSA
   encrypted in PKCS#1 v1.5 chunks (the key part is only sent on login)
5. The body becomes ``{"data": <aes>, "sign": <rsa hex>}`` and the reply
   is the bare base64 ciphertext
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from Crypto.Cipher import AES, PKCS1_v1_5
from Crypto.PublicKey import RSA
from Crypto.Random import random as crypto_random
from Crypto.Util.Padding import pad, unpad

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_RSA_EXPONENT = "010001"

# PKCS#1 v1.5 padding overhead in bytes
PKCS1_PADDING_SIZE = 11


def hexdigest(data: bytes) -> str:
    """Format raw bytes as a lowercase hex string, two characters per byte."""
    return "".join(f"{byte:02x}" for byte in data)


def get_md5_hash(text: str) -> str:
    """Return the hex digest of the MD5 hash of the given string."""
    return hexdigest(hashlib.md5(text.encode("utf-8")).digest())


class CryptoError(Exception):
    """Base exception for cryptographic errors."""

    pass


class KeyNotSetError(CryptoError):
    """Raised when attempting crypto operations without proper key setup."""

    pass


@dataclass
class RSAKeyPair:
    """RSA public key components."""

    n: str  # Modulus (hex string)
    e: str = DEFAULT_RSA_EXPONENT  # Exponent (hex string)

    @property
    def key_length(self) -> int:
        """Get the key length in hex characters."""
        return len(self.n)


@dataclass
class AESKeyPair:
    """AES key and IV pair."""

    key: str  # 16-digit key
    iv: str  # 16-digit IV

    def formatted(self) -> str:
        """Get key in modem format: key=<key>&iv=<iv>"""
        return f"key={self.key}&iv={self.iv}"


class M7350Crypto:
    """Payload encryption for M7350 units running newer firmware.

    One instance holds the keys of a single session. The RSA key and
    sequence number come from the login challenge; the AES key is
    generated locally at login and reused for the rest of the session.
    """

    def __init__(self) -> None:
        """Initialize the crypto handler with empty keys."""
        self._rsa_key: Optional[RSAKeyPair] = None
        self._sequence: Optional[int] = None
        self._aes_key: Optional[AESKeyPair] = None
        self._password_hash: Optional[str] = None

    @property
    def rsa_n(self) -> Optional[str]:
        """Get RSA modulus."""
        return self._rsa_key.n if self._rsa_key else None

    @property
    def rsa_e(self) -> Optional[str]:
        """Get RSA exponent."""
        return self._rsa_key.e if self._rsa_key else None

    @property
    def sequence(self) -> Optional[int]:
        """Get the current sequence number."""
        return self._sequence

    @property
    def aes_key(self) -> Optional[str]:
        """Get AES key."""
        return self._aes_key.key if self._aes_key else None

    @property
    def aes_iv(self) -> Optional[str]:
        """Get AES IV."""
        return self._aes_key.iv if self._aes_key else None

    @property
    def hash(self) -> Optional[str]:
        """Get credentials hash."""
        return self._password_hash

    @property
    def is_ready(self) -> bool:
        """True once every key needed to wrap a request is set."""
        return (
            self._rsa_key is not None
            and self._aes_key is not None
            and self._sequence is not None
            and self._password_hash is not None
        )

    def set_rsa_key(self, n: str, e: Optional[str] = None) -> None:
        """Set RSA public key for signature encryption.

        Args:
            n: RSA modulus as hex string.
            e: RSA exponent as hex string (default 010001).
        """
        self._rsa_key = RSAKeyPair(n=n, e=e or DEFAULT_RSA_EXPONENT)
        logger.debug("Set RSA signature key (length: %d)", len(n))

    def set_sequence(self, seq: int) -> None:
        """Set the sequence number from the login challenge."""
        self._sequence = seq
        logger.debug("Set sequence number")

    def generate_aes_key(self) -> None:
        """Generate a random AES key and IV of 16 decimal digits each."""
        key = "".join(str(crypto_random.randint(0, 9)) for _ in range(16))
        iv = "".join(str(crypto_random.randint(0, 9)) for _ in range(16))
        self._aes_key = AESKeyPair(key=key, iv=iv)
        logger.debug("Generated new AES key pair")

    def get_aes_formatted_key(self) -> str:
        """Get AES key in modem format, or an empty string if not set."""
        if not self._aes_key:
            return ""
        return self._aes_key.formatted()

    def hash_password(self, password: str, username: str = "admin") -> str:
        """Hash credentials as MD5(username + password) for signatures."""
        self._password_hash = get_md5_hash(f"{username}{password}")
        logger.debug("Generated credentials hash")
        return self._password_hash

    def reset(self) -> None:
        """Forget every session key."""
        self._rsa_key = None
        self._sequence = None
        self._aes_key = None
        self._password_hash = None

    def aes_encrypt(self, data: str) -> str:
        """Encrypt data with AES-CBC and return base64.

        Raises:
            KeyNotSetError: If AES key has not been generated.
        """
        if not self._aes_key:
            raise KeyNotSetError("AES key not generated - call generate_aes_key() first")

        cipher = AES.new(
            self._aes_key.key.encode("utf-8"),
            AES.MODE_CBC,
            self._aes_key.iv.encode("utf-8"),
        )
        encrypted = cipher.encrypt(pad(data.encode("utf-8"), AES.block_size))
        return base64.b64encode(encrypted).decode("ascii")

    def aes_decrypt(self, data: str) -> str:
        """Decrypt base64 AES-CBC data.

        Raises:
            KeyNotSetError: If AES key has not been generated.
            CryptoError: If the data is not valid ciphertext for this key.
        """
        if not self._aes_key:
            raise KeyNotSetError("AES key not generated - call generate_aes_key() first")

        cipher = AES.new(
            self._aes_key.key.encode("utf-8"),
            AES.MODE_CBC,
            self._aes_key.iv.encode("utf-8"),
        )
        try:
            decrypted = unpad(cipher.decrypt(base64.b64decode(data)), AES.block_size)
            return decrypted.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise CryptoError(f"Failed to decrypt payload: {e}") from e

    def rsa_encrypt(self, data: str) -> str:
        """Encrypt data with RSA PKCS#1 v1.5, chunked to fit the key size.

        Returns:
            Concatenated hex blocks, each as wide as the modulus.

        Raises:
            KeyNotSetError: If RSA key has not been set.
        """
        if not self._rsa_key:
            raise KeyNotSetError("RSA key not set - call set_rsa_key() first")

        rsa_key = RSA.construct((int(self._rsa_key.n, 16), int(self._rsa_key.e, 16)))
        cipher = PKCS1_v1_5.new(rsa_key)
        block_size = rsa_key.size_in_bytes() - PKCS1_PADDING_SIZE
        block_width = rsa_key.size_in_bytes() * 2

        raw = data.encode("utf-8")
        blocks: List[str] = []
        for i in range(0, len(raw), block_size):
            blocks.append(cipher.encrypt(raw[i:i + block_size]).hex().zfill(block_width))
        return "".join(blocks)

    def generate_signature(self, data_length: int, include_aes_key: bool = False) -> str:
        """Generate the RSA encrypted request signature.

        Args:
            data_length: Length of the base64 encrypted data.
            include_aes_key: Whether to include the AES key (login only).

        Raises:
            KeyNotSetError: If required keys/hash not set.
        """
        if not self._password_hash:
            raise KeyNotSetError("Password hash not set - call hash_password() first")
        if self._sequence is None:
            raise KeyNotSetError("Sequence not set - call set_sequence() first")

        sig_parts: List[str] = []
        if include_aes_key:
            if not self._aes_key:
                raise KeyNotSetError("AES key not generated - call generate_aes_key() first")
            sig_parts.append(self.get_aes_formatted_key())
        sig_parts.append(f"h={self._password_hash}")
        sig_parts.append(f"s={self._sequence + data_length}")

        signature = "&".join(sig_parts)
        logger.debug("Generated signature payload (length: %d)", len(signature))
        return self.rsa_encrypt(signature)

    def encrypt_payload(self, payload: Dict[str, Any], include_aes_key: bool = False) -> Dict[str, str]:
        """Wrap a JSON request into the ``{"data", "sign"}`` envelope."""
        plaintext = json.dumps(payload, separators=(",", ":"))
        data = self.aes_encrypt(plaintext)
        sign = self.generate_signature(len(data), include_aes_key=include_aes_key)
        return {"data": data, "sign": sign}

    def decrypt_payload(self, text: str) -> Dict[str, Any]:
        """Decrypt a base64 reply body and parse it as a JSON object.

        Raises:
            CryptoError: If the body cannot be decrypted or is not a JSON object.
        """
        decrypted = self.aes_decrypt(text.strip())
        try:
            result = json.loads(decrypted)
        except json.JSONDecodeError as e:
            raise CryptoError(f"Decrypted payload is not JSON: {e}") from e
        if not isinstance(result, dict):
            raise CryptoError("Decrypted payload is not a JSON object")
        return result
