import base64
import binascii
import logging
import secrets

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from apps.files.exceptions import InvalidKey, EncryptionFailed, DecryptionFailed

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256
IV_SIZE = 16
KEY_PREFIX = "base64:"


def resolve_key(key) -> bytes:
    """
    Returns the raw 32-byte key. A "base64:" prefixed string is decoded first.
    Raises InvalidKey for anything that does not end up as exactly 32 bytes.
    """
    if key is None:
        raise InvalidKey("Encryption key is required")
    if isinstance(key, str):
        if key.startswith(KEY_PREFIX):
            try:
                key = base64.b64decode(key[len(KEY_PREFIX):], validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidKey(f"Encryption key is not valid base64: {str(e)}") from e
        else:
            key = key.encode("utf-8")
    elif isinstance(key, (bytes, bytearray)):
        key = bytes(key)
        if key.startswith(KEY_PREFIX.encode()):
            return resolve_key(key.decode("ascii", errors="replace"))
    else:
        raise InvalidKey(f"Encryption key must be str or bytes, got {type(key).__name__}")

    if len(key) != KEY_SIZE:
        raise InvalidKey(f"Encryption key must be {KEY_SIZE} bytes for AES-256, got {len(key)}")
    return key


def encrypt(plaintext: bytes, key) -> bytes:
    """
    AES-256-CBC with PKCS7 padding and a fresh random IV.
    Returns base64(iv || ciphertext).
    """
    raw_key = resolve_key(key)
    iv = secrets.token_bytes(IV_SIZE)
    try:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(raw_key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
    except (TypeError, ValueError) as e:
        raise EncryptionFailed(f"Failed to encrypt data: {str(e)}") from e
    return base64.b64encode(iv + ciphertext)


def decrypt(ciphertext: bytes, key) -> bytes:
    """
    Reverses encrypt(). There is no authentication tag, so a wrong key either
    fails on padding or yields garbage.
    """
    raw_key = resolve_key(key)
    try:
        decoded = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionFailed(f"Failed to decode encrypted data: {str(e)}") from e

    iv, body = decoded[:IV_SIZE], decoded[IV_SIZE:]
    if len(iv) != IV_SIZE or not body or len(body) % IV_SIZE:
        raise DecryptionFailed("Encrypted data is truncated or malformed")

    try:
        decryptor = Cipher(algorithms.AES(raw_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionFailed(f"Failed to decrypt data: {str(e)}") from e


class EncryptionService:
    """
    Handles encryption and decryption of file chunks.
    encrypt_chunk is the only place where the "encryption enabled" decision is
    taken, so single and chunked uploads behave the same per segment.
    """

    def __init__(self, key=None, enabled=True):
        self.enabled = enabled
        if key is None and enabled:
            logger.debug("No encryption key provided, generating a random one")
            key = self.generate_key()
        self._key = resolve_key(key) if key is not None else None

    @property
    def key(self) -> bytes:
        if self._key is None:
            raise InvalidKey("No encryption key configured")
        return self._key

    def generate_key(self) -> bytes:
        """
        Generates a new encryption key.
        """
        return secrets.token_bytes(KEY_SIZE)

    def encrypt_chunk(self, chunk: bytes) -> bytes:
        """
        Encrypts a single chunk of data, or returns it untouched when disabled.
        """
        if not self.enabled:
            return chunk
        return encrypt(chunk, self.key)

    def decrypt_chunk(self, encrypted_chunk: bytes) -> bytes:
        """
        Decrypts a single chunk of data.
        Callers decide from the stored record whether the chunk was encrypted.
        """
        return decrypt(encrypted_chunk, self.key)
