"""
vanity_compose.py - Combining a mnemonic-backed key with an externally found tweak

The GPU tool only ever sees the public key P = s*G of the locally derived
seed key s. It searches for a tweak t and reports t together with the
address of the final key, which by the tool's convention is

    final = (s + t) mod n

The combined key is re-derived and re-encoded here; it is accepted only if
it reproduces the address the tool reported. Keeping the phrase and t is
enough to rebuild the final key later.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from coincurve.utils import GROUP_ORDER_INT

import vanity_codec
from vanity_codec import Chain
from vanity_errors import ConfigError, KeyCompositionError
from vanity_keys import CandidateGenerator, SeedPhrase, secp256k1_public_key_from_private

GROUP_ORDER = GROUP_ORDER_INT

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def scalar_from_bytes(key, name="private key"):
    """Interpret 32 big-endian bytes as a scalar in [1, n-1]"""
    key = bytes(key)
    if len(key) != 32:
        raise KeyCompositionError(f"The {name} must be 32 bytes", length=len(key))
    value = int.from_bytes(key, "big")
    if not 0 < value < GROUP_ORDER:
        raise KeyCompositionError(f"The {name} is outside the secp256k1 scalar range")
    return value


def add_private_keys(seed_key, tweak_key):
    """(seed + tweak) mod n as 32 bytes"""
    total = (scalar_from_bytes(seed_key, "seed key") + scalar_from_bytes(tweak_key, "tweak")) % GROUP_ORDER
    if total == 0:
        raise KeyCompositionError("Seed key and tweak cancel out to zero")
    return total.to_bytes(32, "big")


def parse_private_hex(value, name="private key"):
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if not re.fullmatch(r"[0-9a-fA-F]{64}", text):
        raise ConfigError(f"The {name} must be 64 hex characters", value=len(text))
    return bytes.fromhex(text)


@dataclass(frozen=True)
class Tweak:
    """A private-key fragment, the address the external tool says it produces and its score"""
    private_key: bytes = field(repr=False)
    reported_address: Optional[str] = None
    score: Optional[int] = None

    @classmethod
    def from_hex(cls, private_hex, reported_address=None, score=None):
        return cls(parse_private_hex(private_hex, "tweak"), reported_address, score)


@dataclass(frozen=True)
class ComposedKey:
    chain: Chain
    seed_phrase: Optional[SeedPhrase]
    seed_private_key: bytes = field(repr=False)
    tweak: Tweak = field(repr=False)
    private_key: bytes = field(repr=False)
    public_key: bytes = b""
    address: Optional[vanity_codec.Address] = None
    evm_address: str = ""
    contract_address: Optional[str] = None


class KeyComposer:
    """Builds and verifies final keys for delegated (GPU tool) searches"""

    def __init__(self, chain, contract=False):
        if chain not in (Chain.EVM, Chain.TRON):
            raise ConfigError("Delegated search only supports secp256k1 chains", chain=chain.value)
        self.chain = chain
        self.contract = contract

    def combine(self, seed_private_key, tweak, seed_phrase=None):
        """Final key for a seed key and tweak, without checking any reported address"""
        private_key = add_private_keys(seed_private_key, tweak.private_key)
        public_key = secp256k1_public_key_from_private(private_key)
        evm_bytes = vanity_codec.evm_address_bytes(public_key)
        contract = None
        if self.contract:
            contract = vanity_codec.to_checksum_address(vanity_codec.contract_address(evm_bytes))
        return ComposedKey(
            chain=self.chain,
            seed_phrase=seed_phrase,
            seed_private_key=bytes(seed_private_key),
            tweak=tweak,
            private_key=private_key,
            public_key=public_key,
            address=vanity_codec.encode(self.chain, public_key),
            evm_address=vanity_codec.to_checksum_address(evm_bytes),
            contract_address=contract,
        )

    def compose(self, base, tweak, output=""):
        """Combine a locally derived candidate with a tool tweak and verify the result"""
        reported = (tweak.reported_address or "").strip()
        if not _ADDRESS_RE.match(reported):
            raise KeyCompositionError("External tool reported a malformed address",
                                      output=output, reported=reported or None, stage="compose")

        composed = self.combine(base.key.private_key, tweak, base.seed_phrase)
        derived = composed.contract_address if self.contract else composed.evm_address
        if derived.lower() != reported.lower():
            raise KeyCompositionError(
                "Combined key does not reproduce the address reported by the external tool",
                output=output, reported=reported, derived=derived, stage="verify")
        return composed


def recover(phrase, tweak_hex, chain, account=0, address_index=0, contract=False):
    """Rebuild a delegated-search key from its phrase and tweak"""
    generator = CandidateGenerator(chain, account, address_index)
    base = generator.from_seed_phrase(SeedPhrase.from_phrase(phrase))
    return KeyComposer(chain, contract).combine(base.key.private_key, Tweak.from_hex(tweak_hex), base.seed_phrase)
