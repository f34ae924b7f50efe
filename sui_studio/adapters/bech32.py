from __future__ import annotations

"""
Bech32 codec for Sui private keys (suiprivkey1…)
================================================

Sui exports private keys as classic **Bech32** (BIP-0173, not Bech32m):

- HRP (Human Readable Part): "suiprivkey"
- Data: flag byte (0x00 = Ed25519) || 32-byte seed, converted 8→5 bits

Usage
-----
    s = encode_private_key(seed)                 # "suiprivkey1..."
    flag, seed = decode_private_key(s)           # (0, b"...")
    hrp, data5, spec = bech32_decode(s)          # low-level

References
----------
BIP-0173: https://github.com/bitcoin/bips/blob/master/bip-0173.mediawiki
"""

from typing import Iterable, List, Sequence, Tuple

# 32-character alphabet per BIP-0173.
CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CHARSET_REV = {c: i for i, c in enumerate(CHARSET)}

_BECH32_CONST = 1
_BECH32M_CONST = 0x2BC830A3

PRIVATE_KEY_HRP = "suiprivkey"
ED25519_FLAG = 0x00


class Bech32Error(ValueError):
    pass


# ---------------------------------------------------------------------------
# Core primitives
# ---------------------------------------------------------------------------


def _polymod(values: Sequence[int]) -> int:
    GENERATORS = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
    chk = 1
    for v in values:
        if v < 0 or v > 31:
            raise Bech32Error("polymod values must be 5-bit")
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ v
        for i in range(5):
            if (top >> i) & 1:
                chk ^= GENERATORS[i]
    return chk


def _hrp_expand(hrp: str) -> List[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _create_checksum(hrp: str, data: Sequence[int], bech32m: bool) -> List[int]:
    const = _BECH32M_CONST if bech32m else _BECH32_CONST
    values = _hrp_expand(hrp) + list(data)
    polymod = _polymod(values + [0, 0, 0, 0, 0, 0]) ^ const
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def _verify_checksum(hrp: str, data: Sequence[int]) -> Tuple[bool, str]:
    pm = _polymod(_hrp_expand(hrp) + list(data))
    if pm == _BECH32_CONST:
        return True, "bech32"
    if pm == _BECH32M_CONST:
        return True, "bech32m"
    return False, ""


def bech32_encode(hrp: str, data: Sequence[int], spec: str = "bech32") -> str:
    if not hrp or any((ord(c) < 33 or ord(c) > 126) for c in hrp):
        raise Bech32Error("invalid HRP characters")
    if any(d < 0 or d > 31 for d in data):
        raise Bech32Error("data values must be 5-bit (0..31)")
    if spec not in ("bech32", "bech32m"):
        raise Bech32Error("spec must be 'bech32' or 'bech32m'")

    hrp = hrp.lower()
    checksum = _create_checksum(hrp, data, spec == "bech32m")
    return hrp + "1" + "".join(CHARSET[d] for d in list(data) + checksum)


def bech32_decode(bech: str) -> Tuple[str, List[int], str]:
    """
    Decode a Bech32/Bech32m string into (hrp, data, spec).
    Raises Bech32Error on failure.
    """
    if not bech or len(bech) < 8:
        raise Bech32Error("string too short for bech32")

    if any(c.isupper() for c in bech) and any(c.islower() for c in bech):
        raise Bech32Error("mixed-case bech32 is invalid")
    bech = bech.lower()

    pos = bech.rfind("1")
    if pos < 1 or pos + 7 > len(bech):
        raise Bech32Error("invalid position of separator '1'")

    hrp = bech[:pos]
    data_part = bech[pos + 1 :]
    if any((ord(c) < 33 or ord(c) > 126) for c in hrp):
        raise Bech32Error("invalid HRP characters")

    try:
        data = [CHARSET_REV[c] for c in data_part]
    except KeyError:
        raise Bech32Error("invalid data character in bech32 string")

    ok, spec = _verify_checksum(hrp, data)
    if not ok:
        raise Bech32Error("checksum mismatch")

    return hrp, data[:-6], spec


# ---------------------------------------------------------------------------
# 8↔5 bit conversion (BIP-0173 "convertbits")
# ---------------------------------------------------------------------------


def convertbits(
    data: Iterable[int], from_bits: int, to_bits: int, pad: bool = True
) -> List[int]:
    acc = 0
    bits = 0
    ret: List[int] = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1

    for value in data:
        if value < 0 or (value >> from_bits):
            raise Bech32Error("invalid value for convertbits")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (to_bits - bits)) & maxv)
    else:
        if bits >= from_bits:
            raise Bech32Error("illegal zero-padding")
        if ((acc << (to_bits - bits)) & maxv) != 0:
            raise Bech32Error("non-zero padding")

    return ret


# ---------------------------------------------------------------------------
# Sui private key helpers
# ---------------------------------------------------------------------------


def encode_private_key(seed: bytes, flag: int = ED25519_FLAG) -> str:
    """Encode a 32-byte seed as ``suiprivkey1…`` (flag byte prepended)."""
    if len(seed) != 32:
        raise Bech32Error(f"private key seed must be 32 bytes, got {len(seed)}")
    data5 = convertbits(bytes([flag]) + bytes(seed), 8, 5, pad=True)
    return bech32_encode(PRIVATE_KEY_HRP, data5, spec="bech32")


def decode_private_key(value: str) -> Tuple[int, bytes]:
    """Decode ``suiprivkey1…`` into ``(flag, seed)``."""
    hrp, data5, spec = bech32_decode(value.strip())
    if hrp != PRIVATE_KEY_HRP:
        raise Bech32Error(f"unexpected HRP: {hrp} (expected {PRIVATE_KEY_HRP})")
    if spec != "bech32":
        raise Bech32Error("Sui private keys must use bech32")
    raw = bytes(convertbits(data5, 5, 8, pad=False))
    if len(raw) != 33:
        raise Bech32Error(f"decoded private key must be 33 bytes, got {len(raw)}")
    return raw[0], raw[1:]


__all__ = [
    "Bech32Error",
    "PRIVATE_KEY_HRP",
    "ED25519_FLAG",
    "bech32_encode",
    "bech32_decode",
    "convertbits",
    "encode_private_key",
    "decode_private_key",
]
