"""
vanity_codec.py - Chain address encoding

Turns raw public key bytes into the canonical address string of each
supported chain:

    evm     0x + EIP-55 checksummed last 20 bytes of keccak256(x || y)
    tron    Base58Check(0x41 || evm address bytes)
    solana  Base58(ed25519 public key)
    aptos   0x + sha3_256(ed25519 public key || 0x00)

Encoding is a pure function of (chain, public key): no randomness and no
state, so it can be re-run at any time to verify a result.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum

import base58
import coincurve
from Crypto.Hash import keccak

from vanity_errors import CandidateError, ConfigError

HEX_CHARS = "0123456789ABCDEFabcdef"
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

TRON_ADDRESS_PREFIX = b"\x41"
APTOS_ED25519_SCHEME = b"\x00"


class Chain(Enum):
    """Supported address schemes"""
    EVM = "evm"
    TRON = "tron"
    SOLANA = "solana"
    APTOS = "aptos"

    @classmethod
    def parse(cls, value):
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            options = ", ".join(c.value for c in cls)
            raise ConfigError(f"Unsupported chain '{value}', expected one of: {options}") from None

    @property
    def curve(self):
        if self in (Chain.EVM, Chain.TRON):
            return "secp256k1"
        return "ed25519"

    @property
    def uses_mnemonic(self):
        """EVM and Tron keys come from a BIP39 phrase through BIP44 derivation"""
        return self.curve == "secp256k1"

    @property
    def alphabet_name(self):
        if self in (Chain.EVM, Chain.APTOS):
            return "hex"
        return "base58"

    @property
    def alphabet(self):
        if self.alphabet_name == "hex":
            return HEX_CHARS
        return BASE58_ALPHABET

    @property
    def has_hex_marker(self):
        """Whether the canonical address carries a leading '0x'"""
        return self.alphabet_name == "hex"


@dataclass(frozen=True)
class Address:
    """A chain-tagged canonical address string"""
    chain: Chain
    value: str

    @property
    def body(self):
        """The part of the address that patterns are matched against"""
        if self.chain.has_hex_marker and self.value[:2].lower() == "0x":
            return self.value[2:]
        return self.value

    def match_text(self, case_sensitive):
        return self.body if case_sensitive else self.body.lower()

    def __str__(self):
        return self.value


def keccak256(data):
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def secp256k1_public_key(public_key):
    """Normalize a secp256k1 public key to its 64-byte x || y form"""
    raw = bytes(public_key)
    if len(raw) == 64:
        raw = b"\x04" + raw
    try:
        return coincurve.PublicKey(raw).format(compressed=False)[1:]
    except (ValueError, TypeError) as e:
        raise CandidateError(f"Invalid secp256k1 public key: {e}", stage="encode", length=len(raw)) from e


def evm_address_bytes(public_key):
    return keccak256(secp256k1_public_key(public_key))[-20:]


def to_checksum_address(address):
    """EIP-55 mixed-case encoding of a 20-byte address (bytes or hex string)"""
    if isinstance(address, (bytes, bytearray)):
        hex_address = bytes(address).hex()
    else:
        hex_address = address.lower()
        if hex_address.startswith("0x"):
            hex_address = hex_address[2:]
    if len(hex_address) != 40:
        raise CandidateError("EVM address must be 20 bytes", stage="checksum", address=address)

    digest = keccak256(hex_address.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if int(digest[i], 16) >= 8 else c
        for i, c in enumerate(hex_address)
    )


def tron_address_from_evm(address_bytes):
    return base58.b58encode_check(TRON_ADDRESS_PREFIX + bytes(address_bytes)).decode()


def evm_bytes_from_tron(tron_address):
    """Decode a Tron address back to its 20 EVM address bytes, checking the checksum"""
    try:
        payload = base58.b58decode_check(tron_address)
    except ValueError as e:
        raise CandidateError(f"Invalid Base58Check address: {e}", stage="decode", address=tron_address) from e
    if len(payload) != 21 or payload[:1] != TRON_ADDRESS_PREFIX:
        raise CandidateError("Not a Tron address payload", stage="decode", address=tron_address)
    return payload[1:]


def is_valid_base58check(address):
    try:
        base58.b58decode_check(address)
    except ValueError:
        return False
    return True


def contract_address(deployer_bytes):
    """Address of the first contract (nonce 0) deployed by an EVM account"""
    # rlp([deployer, 0]) is always 0xd6 0x94 <20 bytes> 0x80
    return keccak256(b"\xd6\x94" + bytes(deployer_bytes) + b"\x80")[-20:]


def _ed25519_public_key(public_key):
    raw = bytes(public_key)
    if len(raw) != 32:
        raise CandidateError("ed25519 public key must be 32 bytes", stage="encode", length=len(raw))
    return raw


def encode(chain, public_key):
    """Canonical address for a public key on the given chain"""
    if chain is Chain.EVM:
        return Address(chain, to_checksum_address(evm_address_bytes(public_key)))
    if chain is Chain.TRON:
        return Address(chain, tron_address_from_evm(evm_address_bytes(public_key)))
    if chain is Chain.SOLANA:
        return Address(chain, base58.b58encode(_ed25519_public_key(public_key)).decode())
    if chain is Chain.APTOS:
        digest = hashlib.sha3_256(_ed25519_public_key(public_key) + APTOS_ED25519_SCHEME)
        return Address(chain, "0x" + digest.hexdigest())
    raise ConfigError(f"No address encoder for {chain!r}")


def validate_alphabet(chain, pattern, case_sensitive=False):
    """True when every character of the (case-folded) pattern is in the chain alphabet"""
    alphabet = chain.alphabet
    if not case_sensitive:
        alphabet = alphabet.lower()
        pattern = pattern.lower()
    return all(ch in alphabet for ch in pattern)
