import hashlib

import base58
import coincurve
import pytest
from nacl.signing import SigningKey

import vanity_codec
from vanity_codec import Address, Chain
from vanity_errors import CandidateError, ConfigError


def secp_public(secret):
    return coincurve.PrivateKey(secret.to_bytes(32, "big")).public_key.format(compressed=False)[1:]


def test_evm_address_for_private_key_one():
    address = vanity_codec.encode(Chain.EVM, secp_public(1))
    assert address.value == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
    assert address.body == "7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


@pytest.mark.parametrize("expected", [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
    "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
])
def test_checksum_address(expected):
    assert vanity_codec.to_checksum_address(expected.lower()) == expected
    assert vanity_codec.to_checksum_address(bytes.fromhex(expected[2:])) == expected


def test_checksum_address_rejects_wrong_length():
    with pytest.raises(CandidateError):
        vanity_codec.to_checksum_address("0x1234")


def test_public_key_forms_give_same_address():
    key = coincurve.PrivateKey((12345).to_bytes(32, "big")).public_key
    raw = key.format(compressed=False)[1:]
    for form in (raw, key.format(compressed=False), key.format(compressed=True)):
        assert vanity_codec.encode(Chain.EVM, form) == vanity_codec.encode(Chain.EVM, raw)


def test_malformed_public_key_is_candidate_error():
    with pytest.raises(CandidateError):
        vanity_codec.encode(Chain.EVM, b"\x01" * 10)
    with pytest.raises(CandidateError):
        vanity_codec.encode(Chain.SOLANA, b"\x01" * 31)


def test_tron_address_wraps_evm_bytes():
    public = secp_public(1)
    tron = vanity_codec.encode(Chain.TRON, public).value
    assert tron.startswith("T")
    assert len(tron) == 34
    assert vanity_codec.is_valid_base58check(tron)
    assert vanity_codec.evm_bytes_from_tron(tron) == vanity_codec.evm_address_bytes(public)


def test_tron_checksum_detects_corruption():
    tron = vanity_codec.encode(Chain.TRON, secp_public(7)).value
    last = "2" if tron[-1] != "2" else "3"
    corrupted = tron[:-1] + last
    assert not vanity_codec.is_valid_base58check(corrupted)
    with pytest.raises(CandidateError):
        vanity_codec.evm_bytes_from_tron(corrupted)


def test_solana_address_is_base58_public_key():
    public = SigningKey(b"\x07" * 32).verify_key.encode()
    address = vanity_codec.encode(Chain.SOLANA, public)
    assert address.value == base58.b58encode(public).decode()
    assert base58.b58decode(address.value) == public
    assert address.body == address.value


def test_aptos_address_is_sha3_of_key_and_scheme():
    public = SigningKey(b"\x09" * 32).verify_key.encode()
    address = vanity_codec.encode(Chain.APTOS, public)
    assert address.value == "0x" + hashlib.sha3_256(public + b"\x00").hexdigest()
    assert len(address.value) == 66
    assert address.body == address.value[2:]


def test_encoding_is_deterministic():
    secp = secp_public(99)
    ed = SigningKey(b"\x05" * 32).verify_key.encode()
    for chain, public in ((Chain.EVM, secp), (Chain.TRON, secp), (Chain.SOLANA, ed), (Chain.APTOS, ed)):
        assert vanity_codec.encode(chain, public) == vanity_codec.encode(chain, public)


def test_contract_address_of_first_deployment():
    deployer = bytes.fromhex("6ac7ea33f8831ea9dcc53393aaa88b25a785dbf0")
    assert vanity_codec.contract_address(deployer).hex() == "cd234a471b72ba2f1ccf0a70fcaba648a5eecd8d"


def test_match_text_folds_case_when_insensitive():
    address = Address(Chain.EVM, "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf")
    assert address.match_text(True) == "7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
    assert address.match_text(False) == "7e5f4552091a69125d5dfcb7b8c2659029395bdf"
    assert str(address) == address.value


@pytest.mark.parametrize("chain, pattern, case_sensitive, valid", [
    (Chain.EVM, "dead", False, True),
    (Chain.EVM, "DEAD", True, True),
    (Chain.EVM, "g", False, False),
    (Chain.APTOS, "0x00", False, False),
    (Chain.SOLANA, "g", False, True),
    (Chain.SOLANA, "0", False, False),
    (Chain.SOLANA, "l", True, False),
    # 'L' is in the alphabet, so a folded 'l' can still match
    (Chain.SOLANA, "l", False, True),
    (Chain.TRON, "TP", True, True),
])
def test_validate_alphabet(chain, pattern, case_sensitive, valid):
    assert vanity_codec.validate_alphabet(chain, pattern, case_sensitive) is valid


def test_chain_parse():
    assert Chain.parse(" Solana ") is Chain.SOLANA
    with pytest.raises(ConfigError):
        Chain.parse("bitcoin")


def test_chain_properties():
    assert Chain.EVM.uses_mnemonic and Chain.TRON.uses_mnemonic
    assert not Chain.SOLANA.uses_mnemonic and not Chain.APTOS.uses_mnemonic
    assert Chain.APTOS.alphabet_name == "hex"
    assert Chain.TRON.alphabet_name == "base58"
    assert Chain.EVM.has_hex_marker and not Chain.TRON.has_hex_marker
