"""
Recovery phrase → signing identity.

An Algorand recovery phrase is 25 words from the BIP-39 English wordlist:

    - Words 1-24 carry the 32-byte Ed25519 seed, packed little-endian in
      11-bit groups (24 x 11 = 264 bits; the 8 spare bits must be zero).
    - Word 25 is the checksum: the first 11 bits of sha512_256(seed),
      rendered as a word.

Derivation is pure and total. Every input either yields a SigningIdentity
or raises InvalidPhrase naming the specific failure; nothing is accepted
optimistically.

Secrets:
    The identity holds the 64-byte secret key (seed || public key) in a
    bytearray so it can be zeroed with wipe(). It is excluded from repr
    and must never be logged or persisted.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from functools import lru_cache

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from mnemonic import Mnemonic

from evidence_anchor.algorand.encoding import KEY_LEN_BYTES, encode_address, sha512_256

# Words in a complete phrase (24 key words + 1 checksum word).
PHRASE_WORDS = 25

_BITS_PER_WORD = 11
_WORD_MASK = (1 << _BITS_PER_WORD) - 1


class InvalidPhrase(ValueError):
    """The recovery phrase is malformed or its checksum does not validate."""


@lru_cache(maxsize=1)
def _wordlist() -> tuple[str, ...]:
    words = tuple(Mnemonic("english").wordlist)
    if len(words) != 2048:
        raise RuntimeError(f"BIP-39 wordlist must have 2048 words, got {len(words)}")
    return words


@lru_cache(maxsize=1)
def _word_index() -> dict[str, int]:
    return {word: i for i, word in enumerate(_wordlist())}


# =========================================================================
# Bit packing
# =========================================================================


def _bytes_to_11bit(data: bytes) -> list[int]:
    """Split bytes into little-endian 11-bit groups (last group zero-padded)."""
    buffer = 0
    num_bits = 0
    out: list[int] = []
    for byte in data:
        buffer |= byte << num_bits
        num_bits += 8
        if num_bits >= _BITS_PER_WORD:
            out.append(buffer & _WORD_MASK)
            buffer >>= _BITS_PER_WORD
            num_bits -= _BITS_PER_WORD
    if num_bits:
        out.append(buffer & _WORD_MASK)
    return out


def _11bit_to_bytes(nums: list[int]) -> bytes:
    """Inverse of _bytes_to_11bit; trailing partial byte is kept."""
    buffer = 0
    num_bits = 0
    out = bytearray()
    for num in nums:
        buffer |= num << num_bits
        num_bits += _BITS_PER_WORD
        while num_bits >= 8:
            out.append(buffer & 0xFF)
            buffer >>= 8
            num_bits -= 8
    if num_bits:
        out.append(buffer & 0xFF)
    return bytes(out)


def _checksum_word(seed: bytes) -> str:
    return _wordlist()[_bytes_to_11bit(sha512_256(seed)[:2])[0]]


# =========================================================================
# SigningIdentity
# =========================================================================


@dataclass(eq=False)
class SigningIdentity:
    """Address plus secret key material derived from a recovery phrase.

    Attributes:
        address: 58-char Algorand address (public, safe to display).
        secret_key: 64 bytes, seed || public key. Zeroed by wipe().
    """

    address: str
    secret_key: bytearray = field(repr=False)

    @property
    def public_key(self) -> bytes:
        return bytes(self.secret_key[KEY_LEN_BYTES:])

    @property
    def wiped(self) -> bool:
        return not any(self.secret_key)

    def sign(self, message: bytes) -> bytes:
        """Ed25519-sign a message with this identity's key.

        Raises:
            ValueError: If the identity has already been wiped.
        """
        if self.wiped:
            raise ValueError("signing identity has been wiped")
        key = Ed25519PrivateKey.from_private_bytes(bytes(self.secret_key[:KEY_LEN_BYTES]))
        return key.sign(message)

    def wipe(self) -> None:
        """Zero the secret key in place."""
        for i in range(len(self.secret_key)):
            self.secret_key[i] = 0


# =========================================================================
# Public API
# =========================================================================


def _identity_from_seed(seed: bytes) -> SigningIdentity:
    public_key = (
        Ed25519PrivateKey.from_private_bytes(seed)
        .public_key()
        .public_bytes(Encoding.Raw, PublicFormat.Raw)
    )
    return SigningIdentity(
        address=encode_address(public_key),
        secret_key=bytearray(seed + public_key),
    )


def derive(phrase: str) -> SigningIdentity:
    """Derive the signing identity encoded by a 25-word recovery phrase.

    Args:
        phrase: Space-separated words. Surrounding whitespace and case
            are ignored; runs of whitespace count as one separator.

    Returns:
        SigningIdentity. Same phrase always yields the same identity.

    Raises:
        InvalidPhrase: Wrong word count, unknown word, non-zero padding
            bits, or checksum mismatch.
    """
    words = phrase.lower().split()
    if len(words) != PHRASE_WORDS:
        raise InvalidPhrase(
            f"recovery phrase must have {PHRASE_WORDS} words, got {len(words)}"
        )

    index = _word_index()
    unknown = [pos + 1 for pos, word in enumerate(words) if word not in index]
    if unknown:
        raise InvalidPhrase(f"unknown word at position(s) {unknown}")

    key_bytes = _11bit_to_bytes([index[w] for w in words[:-1]])
    seed, padding = key_bytes[:KEY_LEN_BYTES], key_bytes[KEY_LEN_BYTES:]
    if any(padding):
        raise InvalidPhrase("recovery phrase checksum failed (non-zero padding)")
    if _checksum_word(seed) != words[-1]:
        raise InvalidPhrase("recovery phrase checksum failed")

    return _identity_from_seed(seed)


def phrase_from_seed(seed: bytes) -> str:
    """Encode a 32-byte seed as its 25-word recovery phrase.

    Raises:
        ValueError: If seed is not 32 bytes.
    """
    if len(seed) != KEY_LEN_BYTES:
        raise ValueError(f"seed must be {KEY_LEN_BYTES} bytes, got {len(seed)}")
    wordlist = _wordlist()
    words = [wordlist[n] for n in _bytes_to_11bit(seed)]
    words.append(_checksum_word(seed))
    return " ".join(words)


def generate_phrase() -> str:
    """Create a fresh random recovery phrase."""
    return phrase_from_seed(secrets.token_bytes(KEY_LEN_BYTES))
