"""
vanity_keys.py - Candidate key generation

Two strategies, picked by chain:

- HD (evm, tron): 32 bytes of entropy -> 24-word BIP39 phrase -> seed ->
  BIP44 child key at m/44'/<coin>'/<account>'/0/<index>. The address can
  always be rebuilt from the phrase alone.
- Raw keypair (solana, aptos): a fresh ed25519 signing seed, no phrase.

Every call draws fresh entropy from the OS; nothing is carried between
attempts.
"""

import secrets
from dataclasses import dataclass, field
from typing import Optional

import coincurve
from bip_utils import Bip32KeyError, Bip44, Bip44Changes, Bip44Coins
from mnemonic import Mnemonic
from nacl.signing import SigningKey

import vanity_codec
from vanity_codec import Chain
from vanity_errors import CandidateError, ConfigError, EntropyError

ENTROPY_BYTES = 32
MNEMONIC_WORDS = 24
MAX_HD_INDEX = 2**31 - 1

BIP44_COINS = {
    Chain.EVM: (Bip44Coins.ETHEREUM, 60),
    Chain.TRON: (Bip44Coins.TRON, 195),
}

_wordlist = Mnemonic("english")


def draw_entropy(size=ENTROPY_BYTES):
    """Secure random bytes; failure here is fatal for the whole search"""
    try:
        return secrets.token_bytes(size)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"Cannot draw {size} bytes of secure entropy: {e}", stage="entropy") from e


def derivation_path(chain, account=0, address_index=0):
    _, coin_type = BIP44_COINS[chain]
    return f"m/44'/{coin_type}'/{account}'/0/{address_index}"


@dataclass(frozen=True)
class KeyMaterial:
    """Private scalar (secp256k1) or signing seed (ed25519) plus its public key"""
    chain: Chain
    private_key: bytes = field(repr=False)
    public_key: bytes

    @property
    def secret_key(self):
        """ed25519 64-byte secret (seed || public key); the private key itself for secp256k1"""
        if self.chain.curve == "ed25519":
            return self.private_key + self.public_key
        return self.private_key


@dataclass(frozen=True)
class SeedPhrase:
    """A BIP39 phrase together with the seed it expands to"""
    phrase: str = field(repr=False)
    seed: bytes = field(repr=False)

    @classmethod
    def from_entropy(cls, entropy):
        phrase = _wordlist.to_mnemonic(entropy)
        return cls(phrase, Mnemonic.to_seed(phrase, passphrase=""))

    @classmethod
    def from_phrase(cls, phrase):
        words = phrase.split()
        normalized = " ".join(words)
        if len(words) != MNEMONIC_WORDS or not _wordlist.check(normalized):
            raise ConfigError(f"Mnemonic must be a valid {MNEMONIC_WORDS}-word BIP39 phrase",
                              words=len(words), stage="mnemonic")
        return cls(normalized, Mnemonic.to_seed(normalized, passphrase=""))

    @property
    def words(self):
        return self.phrase.split()


@dataclass(frozen=True)
class Candidate:
    key: KeyMaterial
    address: vanity_codec.Address
    seed_phrase: Optional[SeedPhrase] = None
    path: Optional[str] = None


def secp256k1_public_key_from_private(private_key):
    try:
        return coincurve.PrivateKey(private_key).public_key.format(compressed=False)[1:]
    except ValueError as e:
        raise CandidateError(f"Invalid secp256k1 private key: {e}", stage="derive") from e


def derive_hd_key(chain, seed, account=0, address_index=0):
    """BIP44 child private key for the chain's coin type"""
    coin, _ = BIP44_COINS[chain]
    try:
        ctx = Bip44.FromSeed(seed, coin)
        child = ctx.Purpose().Coin().Account(account).Change(Bip44Changes.CHAIN_EXT).AddressIndex(address_index)
        return child.PrivateKey().Raw().ToBytes()
    except (Bip32KeyError, ValueError) as e:
        raise CandidateError(f"BIP44 derivation failed: {e}", chain=chain.value, stage="derive") from e


class CandidateGenerator:
    """Produces one fresh (key, address) candidate per call for a single chain"""

    def __init__(self, chain, account=0, address_index=0, entropy_source=draw_entropy):
        if chain.uses_mnemonic:
            for name, value in (("account", account), ("address_index", address_index)):
                if not 0 <= value <= MAX_HD_INDEX:
                    raise ConfigError(f"{name} must be between 0 and {MAX_HD_INDEX}", value=value)
        self.chain = chain
        self.account = account
        self.address_index = address_index
        self.entropy_source = entropy_source

    def generate(self):
        entropy = self.entropy_source(ENTROPY_BYTES)
        if self.chain.uses_mnemonic:
            return self.from_seed_phrase(SeedPhrase.from_entropy(entropy))
        return self.from_signing_seed(entropy)

    def from_seed_phrase(self, seed_phrase):
        private_key = derive_hd_key(self.chain, seed_phrase.seed, self.account, self.address_index)
        public_key = secp256k1_public_key_from_private(private_key)
        return Candidate(
            key=KeyMaterial(self.chain, private_key, public_key),
            address=vanity_codec.encode(self.chain, public_key),
            seed_phrase=seed_phrase,
            path=derivation_path(self.chain, self.account, self.address_index),
        )

    def from_signing_seed(self, seed):
        if len(seed) != 32:
            raise CandidateError("ed25519 signing seed must be 32 bytes", stage="derive", length=len(seed))
        public_key = SigningKey(seed).verify_key.encode()
        return Candidate(
            key=KeyMaterial(self.chain, bytes(seed), public_key),
            address=vanity_codec.encode(self.chain, public_key),
        )

    def rederive(self, candidate):
        """Rebuild a candidate from its retained secret alone (phrase or signing seed)"""
        if self.chain.uses_mnemonic:
            if candidate.seed_phrase is None:
                raise CandidateError("HD candidate has no seed phrase", chain=self.chain.value, stage="finalize")
            return self.from_seed_phrase(SeedPhrase.from_phrase(candidate.seed_phrase.phrase))
        return self.from_signing_seed(candidate.key.private_key)


def generate(chain):
    """One fresh candidate with default derivation settings"""
    return CandidateGenerator(chain).generate()
