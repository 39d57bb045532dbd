import pytest

import vanity_codec
import vanity_keys
from vanity_codec import Chain
from vanity_errors import CandidateError, ConfigError, EntropyError
from vanity_keys import CandidateGenerator, SeedPhrase


def test_zero_entropy_phrase(zero_phrase):
    seed_phrase = SeedPhrase.from_entropy(bytes(32))
    assert seed_phrase.phrase == zero_phrase
    assert len(seed_phrase.words) == 24
    assert len(seed_phrase.seed) == 64


def test_phrase_and_entropy_give_same_seed(zero_phrase):
    assert SeedPhrase.from_phrase(zero_phrase).seed == SeedPhrase.from_entropy(bytes(32)).seed


def test_from_phrase_normalizes_whitespace(zero_phrase):
    messy = "  " + zero_phrase.replace(" ", "   ") + "\n"
    assert SeedPhrase.from_phrase(messy).phrase == zero_phrase


@pytest.mark.parametrize("phrase", [
    "abandon " * 11 + "about",
    " ".join(["abandon"] * 24),
    "",
])
def test_from_phrase_rejects_invalid(phrase):
    with pytest.raises(ConfigError):
        SeedPhrase.from_phrase(phrase)


def test_seed_phrase_repr_hides_secret(zero_phrase):
    assert "abandon" not in repr(SeedPhrase.from_phrase(zero_phrase))


@pytest.mark.parametrize("chain, path", [
    (Chain.EVM, "m/44'/60'/0'/0/0"),
    (Chain.TRON, "m/44'/195'/0'/0/0"),
])
def test_hd_candidate_is_reproducible(zero_phrase, chain, path):
    generator = CandidateGenerator(chain)
    first = generator.from_seed_phrase(SeedPhrase.from_phrase(zero_phrase))
    second = generator.from_seed_phrase(SeedPhrase.from_phrase(zero_phrase))
    assert first == second
    assert first.path == path
    assert len(first.key.private_key) == 32
    assert len(first.key.public_key) == 64
    assert first.address == vanity_codec.encode(chain, first.key.public_key)


def test_evm_and_tron_share_key_material_only_by_coin(zero_phrase):
    seed_phrase = SeedPhrase.from_phrase(zero_phrase)
    evm = CandidateGenerator(Chain.EVM).from_seed_phrase(seed_phrase)
    tron = CandidateGenerator(Chain.TRON).from_seed_phrase(seed_phrase)
    assert evm.key.private_key != tron.key.private_key


def test_account_and_index_change_the_key(zero_phrase):
    seed_phrase = SeedPhrase.from_phrase(zero_phrase)
    base = CandidateGenerator(Chain.EVM).from_seed_phrase(seed_phrase)
    other = CandidateGenerator(Chain.EVM, account=1, address_index=3).from_seed_phrase(seed_phrase)
    assert other.path == "m/44'/60'/1'/0/3"
    assert other.address != base.address


def test_generate_uses_entropy_source():
    generator = CandidateGenerator(Chain.EVM, entropy_source=lambda size: bytes(size))
    candidate = generator.generate()
    assert candidate.seed_phrase.words[-1] == "art"
    assert generator.rederive(candidate) == candidate


@pytest.mark.parametrize("chain", [Chain.SOLANA, Chain.APTOS])
def test_raw_keypair_candidate(chain):
    generator = CandidateGenerator(chain)
    candidate = generator.generate()
    assert candidate.seed_phrase is None
    assert candidate.path is None
    assert len(candidate.key.private_key) == 32
    assert len(candidate.key.secret_key) == 64
    assert candidate.key.secret_key.endswith(candidate.key.public_key)
    assert generator.rederive(candidate) == candidate


def test_fresh_candidates_differ():
    generator = CandidateGenerator(Chain.SOLANA)
    assert generator.generate().address != generator.generate().address


def test_rederive_hd_needs_phrase():
    generator = CandidateGenerator(Chain.EVM)
    candidate = generator.generate()
    stripped = vanity_keys.Candidate(candidate.key, candidate.address)
    with pytest.raises(CandidateError):
        generator.rederive(stripped)


def test_bad_signing_seed_is_candidate_error():
    with pytest.raises(CandidateError):
        CandidateGenerator(Chain.SOLANA).from_signing_seed(b"\x01" * 16)


def test_hd_index_range():
    with pytest.raises(ConfigError):
        CandidateGenerator(Chain.EVM, account=-1)
    with pytest.raises(ConfigError):
        CandidateGenerator(Chain.TRON, address_index=2**31)


def test_draw_entropy_failure_is_fatal(monkeypatch):
    def broken(size):
        raise OSError("no entropy")

    monkeypatch.setattr(vanity_keys.secrets, "token_bytes", broken)
    with pytest.raises(EntropyError):
        vanity_keys.draw_entropy()


def test_module_generate():
    candidate = vanity_keys.generate(Chain.TRON)
    assert candidate.address.value.startswith("T")
    assert candidate.seed_phrase is not None
