"""
Ed25519 identities for Sui: burner generation, master-key parsing, signing.

- ``generate_burner()`` creates a fresh key pair from the OS CSPRNG and derives
  its Sui address: ``0x`` + hex(BLAKE2b-256(flag 0x00 || pubkey)).
- ``load_master_identity(secret)`` accepts the formats operators actually paste
  into ``MASTER_WALLET_MNEMONIC``: ``suiprivkey1…``, base64 (32/33/64 bytes),
  a hex seed, or a BIP-39 mnemonic (SLIP-0010 path ``m/44'/784'/0'/0'/0'``).
- ``SuiIdentity.sign_transaction(tx_bytes)`` returns the serialized signature
  expected by ``sui_executeTransactionBlock``.

Private key material is exposed only through explicit accessors and is
excluded from ``repr`` so it never ends up in logs by accident.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import unicodedata
from dataclasses import dataclass, field
from typing import Sequence, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (Ed25519PrivateKey,
                                                               Ed25519PublicKey)
from mnemonic import Mnemonic

from . import bech32

ED25519_FLAG = 0x00
# IntentScope::TransactionData, IntentVersion::V0, AppId::Sui
TRANSACTION_INTENT = bytes([0, 0, 0])
SUI_DERIVATION_PATH = "m/44'/784'/0'/0'/0'"

_HARDENED = 0x80000000


class MasterKeyError(ValueError):
    """Raised when key material cannot be parsed."""


def _blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def address_from_public_key(public_key: bytes) -> str:
    if len(public_key) != 32:
        raise MasterKeyError(f"Ed25519 public key must be 32 bytes, got {len(public_key)}")
    return "0x" + _blake2b_256(bytes([ED25519_FLAG]) + public_key).hex()


@dataclass(frozen=True)
class SuiIdentity:
    """An Ed25519 key pair plus its derived Sui address."""

    address: str
    public_key: bytes
    _private_key: Ed25519PrivateKey = field(repr=False, compare=False)

    @classmethod
    def from_seed(cls, seed: bytes) -> "SuiIdentity":
        if len(seed) != 32:
            raise MasterKeyError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        sk = Ed25519PrivateKey.from_private_bytes(bytes(seed))
        pk = sk.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return cls(address=address_from_public_key(pk), public_key=pk, _private_key=sk)

    # --- secret accessors -------------------------------------------------

    def seed(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def private_key_hex(self) -> str:
        return self.seed().hex()

    def private_key_bech32(self) -> str:
        return bech32.encode_private_key(self.seed(), flag=ED25519_FLAG)

    # --- signing ----------------------------------------------------------

    def sign_transaction(self, tx_bytes: bytes | str) -> str:
        """
        Sign BCS transaction bytes (raw or base64) with the transaction intent.

        Returns base64(flag || signature || public key).
        """
        raw = base64.b64decode(tx_bytes) if isinstance(tx_bytes, str) else bytes(tx_bytes)
        digest = _blake2b_256(TRANSACTION_INTENT + raw)
        sig = self._private_key.sign(digest)
        return base64.b64encode(bytes([ED25519_FLAG]) + sig + self.public_key).decode("ascii")


def generate_burner() -> SuiIdentity:
    """Fresh key pair from the OS entropy source. Never reused across deployments."""
    sk = Ed25519PrivateKey.generate()
    seed = sk.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return SuiIdentity.from_seed(seed)


def verify_signature(serialized: str, tx_bytes: bytes) -> bool:
    """Check a serialized signature produced by :meth:`SuiIdentity.sign_transaction`."""
    blob = base64.b64decode(serialized)
    if len(blob) != 97 or blob[0] != ED25519_FLAG:
        return False
    pk = Ed25519PublicKey.from_public_bytes(blob[65:])
    try:
        pk.verify(blob[1:65], _blake2b_256(TRANSACTION_INTENT + tx_bytes))
    except Exception:
        return False
    return True


# ----------------------------- mnemonic (BIP-39 / SLIP-0010) -----------------


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """BIP-39 seed: PBKDF2-HMAC-SHA512, 2048 rounds, salt "mnemonic" + passphrase."""
    words = unicodedata.normalize("NFKD", " ".join(mnemonic.split()))
    salt = unicodedata.normalize("NFKD", "mnemonic" + passphrase)
    return hashlib.pbkdf2_hmac("sha512", words.encode("utf-8"), salt.encode("utf-8"), 2048)


def _parse_path(path: str) -> Sequence[int]:
    parts = path.strip().split("/")
    if not parts or parts[0] != "m":
        raise MasterKeyError(f"derivation path must start with 'm': {path!r}")
    out = []
    for p in parts[1:]:
        if not p.endswith("'"):
            # ed25519 under SLIP-0010 only supports hardened children
            raise MasterKeyError(f"non-hardened segment in ed25519 path: {p!r}")
        out.append(int(p[:-1]) + _HARDENED)
    return out


def slip10_master(seed: bytes) -> Tuple[bytes, bytes]:
    i = hmac.new(b"ed25519 seed", seed, hashlib.sha512).digest()
    return i[:32], i[32:]


def slip10_derive(seed: bytes, path: str = SUI_DERIVATION_PATH) -> Tuple[bytes, bytes]:
    """Return ``(private_key, chain_code)`` at ``path``."""
    key, chain = slip10_master(seed)
    for index in _parse_path(path):
        data = b"\x00" + key + index.to_bytes(4, "big")
        i = hmac.new(chain, data, hashlib.sha512).digest()
        key, chain = i[:32], i[32:]
    return key, chain


def identity_from_mnemonic(mnemonic: str, path: str = SUI_DERIVATION_PATH) -> SuiIdentity:
    key, _ = slip10_derive(mnemonic_to_seed(mnemonic), path)
    return SuiIdentity.from_seed(key)


# ----------------------------- master secret ---------------------------------

_MNEMONIC_LENGTHS = (12, 15, 18, 21, 24)


def _seed_from_raw(raw: bytes) -> bytes:
    if len(raw) == 32:
        return raw
    if len(raw) == 33 and raw[0] == ED25519_FLAG:
        return raw[1:]
    if len(raw) == 64:
        # legacy export: seed || public key
        return raw[:32]
    raise MasterKeyError(f"unsupported key length {len(raw)}")


def load_master_identity(secret: str) -> SuiIdentity:
    """
    Parse the configured master funding secret.

    Raises MasterKeyError when no supported encoding matches.
    """
    s = (secret or "").strip()
    if not s:
        raise MasterKeyError("empty master secret")

    if s.lower().startswith(bech32.PRIVATE_KEY_HRP):
        try:
            flag, seed = bech32.decode_private_key(s)
        except bech32.Bech32Error as e:
            raise MasterKeyError(f"invalid suiprivkey: {e}") from e
        if flag != ED25519_FLAG:
            raise MasterKeyError(f"unsupported key scheme flag {flag:#x}")
        return SuiIdentity.from_seed(seed)

    words = s.split()
    if len(words) in _MNEMONIC_LENGTHS:
        if not Mnemonic("english").check(" ".join(words)):
            raise MasterKeyError(f"{len(words)}-word mnemonic fails the BIP-39 checksum")
        return identity_from_mnemonic(s)

    hx = s[2:] if s.lower().startswith("0x") else s
    if len(hx) in (64, 66, 128) and all(c in "0123456789abcdefABCDEF" for c in hx):
        return SuiIdentity.from_seed(_seed_from_raw(bytes.fromhex(hx)))

    try:
        raw = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MasterKeyError("master secret is neither suiprivkey, mnemonic, hex nor base64") from e
    return SuiIdentity.from_seed(_seed_from_raw(raw))


__all__ = [
    "SuiIdentity",
    "MasterKeyError",
    "SUI_DERIVATION_PATH",
    "address_from_public_key",
    "generate_burner",
    "verify_signature",
    "mnemonic_to_seed",
    "slip10_master",
    "slip10_derive",
    "identity_from_mnemonic",
    "load_master_identity",
]
