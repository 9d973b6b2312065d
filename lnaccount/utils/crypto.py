from base64 import b64decode, b64encode
from hashlib import sha256
from typing import Optional, Union

from Cryptodome import Random
from Cryptodome.Cipher import AES
from Cryptodome.Util.Padding import pad, unpad


def random_nonce(length: int = 12) -> str:
    return Random.new().read(length).hex()


def verify_preimage(preimage: Union[bytes, str], payment_hash: str) -> bool:
    preimage_bytes = (
        preimage if isinstance(preimage, bytes) else bytes.fromhex(preimage)
    )
    calculated_hash = sha256(preimage_bytes).hexdigest()
    return calculated_hash == payment_hash.lower()


class AESCipher:
    """
    AES-256-CBC encryption/decryption with base64 encoded ciphertext and iv,
    as used by the LNURL-pay `aes` success action (LUD-10).
    :param key: The key to use for en-/decryption, the 32 byte payment preimage.
        It can be bytes or a hex string.
    """

    def __init__(self, key: Union[bytes, str], block_size: int = 16):
        self.block_size = block_size
        self.key = key if isinstance(key, bytes) else bytes.fromhex(key)
        if len(self.key) != 32:
            raise ValueError("Key must be 32 bytes.")

    def decrypt(self, ciphertext: str, iv: str) -> str:
        """Decrypts a base64 encoded ciphertext with a base64 encoded iv."""
        try:
            encrypted_bytes = b64decode(ciphertext, validate=True)
            iv_bytes = b64decode(iv, validate=True)
        except ValueError as exc:
            raise ValueError("Invalid base64 payload.") from exc

        if len(iv_bytes) != self.block_size:
            raise ValueError(f"IV must be {self.block_size} bytes.")
        if len(encrypted_bytes) == 0 or len(encrypted_bytes) % self.block_size:
            raise ValueError("Ciphertext length is not a multiple of block size.")

        aes = AES.new(self.key, AES.MODE_CBC, iv_bytes)
        decrypted_bytes = aes.decrypt(encrypted_bytes)

        try:
            unpadded = unpad(decrypted_bytes, self.block_size)
        except ValueError as exc:
            raise ValueError("Could not decrypt payload") from exc

        try:
            return unpadded.decode()
        except UnicodeDecodeError as exc:
            raise ValueError("Decryption resulted in invalid UTF-8 data.") from exc

    def encrypt(self, message: bytes, iv: Optional[bytes] = None) -> tuple[str, str]:
        """
        Encrypts `message` and returns the base64 encoded ciphertext and iv.
        """
        iv = iv or Random.new().read(self.block_size)
        aes = AES.new(self.key, AES.MODE_CBC, iv)
        encrypted = aes.encrypt(pad(message, self.block_size))
        return b64encode(encrypted).decode(), b64encode(iv).decode()
