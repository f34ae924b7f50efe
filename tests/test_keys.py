from __future__ import annotations

import base64
import hashlib

import pytest

from sui_studio.adapters import bech32
from sui_studio.adapters.keys import (SUI_DERIVATION_PATH, MasterKeyError,
                                      SuiIdentity, address_from_public_key,
                                      generate_burner, identity_from_mnemonic,
                                      load_master_identity, mnemonic_to_seed,
                                      slip10_derive, slip10_master,
                                      verify_signature)

SEED = bytes(range(32))

# SLIP-0010 test vector 1 (ed25519)
SLIP10_SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")


def test_burners_are_distinct_and_well_formed():
    a, b = generate_burner(), generate_burner()
    assert a.address != b.address
    assert a.private_key_hex() != b.private_key_hex()
    for ident in (a, b):
        assert ident.address.startswith("0x") and len(ident.address) == 66
        assert len(bytes.fromhex(ident.private_key_hex())) == 32
        assert ident.private_key_bech32().startswith("suiprivkey1")


def test_address_is_blake2b_of_flagged_pubkey():
    ident = SuiIdentity.from_seed(SEED)
    expected = "0x" + hashlib.blake2b(b"\x00" + ident.public_key, digest_size=32).hexdigest()
    assert ident.address == expected
    assert address_from_public_key(ident.public_key) == expected


def test_private_key_round_trips_to_same_address():
    ident = generate_burner()
    from_hex = SuiIdentity.from_seed(bytes.fromhex(ident.private_key_hex()))
    from_bech = load_master_identity(ident.private_key_bech32())
    assert from_hex.address == ident.address
    assert from_bech.address == ident.address


def test_repr_hides_secret():
    ident = SuiIdentity.from_seed(SEED)
    assert ident.private_key_hex() not in repr(ident)
    assert "_private_key" not in repr(ident)


def test_signature_layout_and_verification():
    ident = SuiIdentity.from_seed(SEED)
    tx = b"some bcs transaction bytes"
    sig = ident.sign_transaction(base64.b64encode(tx).decode())
    blob = base64.b64decode(sig)
    assert len(blob) == 97
    assert blob[0] == 0x00
    assert blob[65:] == ident.public_key
    assert verify_signature(sig, tx)
    assert not verify_signature(sig, tx + b"!")


def test_raw_and_base64_signing_agree():
    ident = SuiIdentity.from_seed(SEED)
    tx = b"\x00\x01\x02"
    assert ident.sign_transaction(tx) == ident.sign_transaction(base64.b64encode(tx).decode())


def test_slip10_vector_master():
    key, chain = slip10_master(SLIP10_SEED)
    assert key.hex() == "2b4be7f19ee27bbf30c667b642d5f4aa69fd169872f8fc3059c08ebae2eb19e7"
    assert chain.hex() == "90046a93de5380a72b5e45010748567d5ea02bbf6522f979e05c0d8d8ca9fffb"


def test_slip10_vector_first_hardened_child():
    key, chain = slip10_derive(SLIP10_SEED, "m/0'")
    assert key.hex() == "68e0fe46dfb67e368c75379acec591dad19df3cde26e63b93a8e704f1dade7a3"
    assert chain.hex() == "8b59aa11380b624e81507a27fedda59fea6d0b779a778918a2fd3590e16e9c69"


def test_slip10_rejects_non_hardened_segments():
    with pytest.raises(MasterKeyError):
        slip10_derive(SLIP10_SEED, "m/44'/784'/0")


MNEMONIC = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"


def test_bip39_seed_vector():
    # Trezor BIP-39 vector with passphrase "TREZOR"
    seed = mnemonic_to_seed(MNEMONIC, "TREZOR")
    assert seed.hex().startswith("c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e5349553")


def test_mnemonic_identity_uses_sui_path():
    ident = identity_from_mnemonic(MNEMONIC)
    key, _ = slip10_derive(mnemonic_to_seed(MNEMONIC), SUI_DERIVATION_PATH)
    assert ident.seed() == key
    assert load_master_identity("  " + MNEMONIC.replace(" ", "  ") + "\n").address == ident.address


def test_mistyped_mnemonic_is_rejected():
    # swapping the last word breaks the checksum
    typo = MNEMONIC.rsplit(" ", 1)[0] + " abandon"
    with pytest.raises(MasterKeyError, match="checksum"):
        load_master_identity(typo)


@pytest.mark.parametrize(
    "encode",
    [
        lambda s: s.hex(),
        lambda s: "0x" + s.hex(),
        lambda s: "00" + s.hex(),
        lambda s: base64.b64encode(s).decode(),
        lambda s: base64.b64encode(b"\x00" + s).decode(),
        lambda s: bech32.encode_private_key(s),
    ],
    ids=["hex", "0xhex", "flagged-hex", "base64", "flagged-base64", "suiprivkey"],
)
def test_master_secret_formats(encode):
    ident = load_master_identity(encode(SEED))
    assert ident.address == SuiIdentity.from_seed(SEED).address


def test_legacy_64_byte_export():
    ident = SuiIdentity.from_seed(SEED)
    legacy = base64.b64encode(SEED + ident.public_key).decode()
    assert load_master_identity(legacy).address == ident.address


@pytest.mark.parametrize("secret", ["", "   ", "not a key at all!", "deadbeef", "suiprivkey1qqqqqq"])
def test_master_secret_rejects_garbage(secret):
    with pytest.raises(MasterKeyError):
        load_master_identity(secret)


def test_master_secret_rejects_other_schemes():
    value = bech32.encode_private_key(SEED, flag=0x01)
    with pytest.raises(MasterKeyError):
        load_master_identity(value)
