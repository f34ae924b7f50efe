from __future__ import annotations

import pytest

from sui_studio.adapters.bech32 import (Bech32Error, bech32_decode,
                                        bech32_encode, convertbits,
                                        decode_private_key,
                                        encode_private_key)


@pytest.mark.parametrize("value", ["A12UEL5L", "a12uel5l", "abcdef1qpzry9x8gf2tvdw0s3jn54khce6mua7lmqqqxw"])
def test_bip173_valid_strings(value):
    hrp, data, spec = bech32_decode(value)
    assert spec == "bech32"
    assert bech32_encode(hrp, data) == value.lower()


@pytest.mark.parametrize(
    "value",
    [
        "A1G7SGD8",  # checksum computed over uppercase HRP
        "a12UEL5L",  # mixed case
        "1pzry9x0s0muk",  # empty HRP
        "x1b4n0q5v",  # invalid data character
        "li1dgmt3",  # checksum too short
    ],
)
def test_bip173_invalid_strings(value):
    with pytest.raises(Bech32Error):
        bech32_decode(value)


def test_private_key_encoding():
    seed = bytes(range(32))
    s = encode_private_key(seed)
    assert s.startswith("suiprivkey1")
    flag, out = decode_private_key(s)
    assert flag == 0
    assert out == seed


def test_private_key_detects_typos():
    s = encode_private_key(bytes(32))
    broken = s[:-1] + ("q" if s[-1] != "q" else "p")
    with pytest.raises(Bech32Error):
        decode_private_key(broken)


def test_private_key_wrong_hrp():
    data5 = convertbits(bytes(33), 8, 5)
    with pytest.raises(Bech32Error):
        decode_private_key(bech32_encode("suipubkey", data5))


def test_private_key_seed_length():
    with pytest.raises(Bech32Error):
        encode_private_key(bytes(31))


def test_convertbits_rejects_nonzero_padding():
    with pytest.raises(Bech32Error):
        convertbits([31], 5, 8, pad=False)
