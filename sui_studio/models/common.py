from __future__ import annotations

"""
Common API model types.

- ObjectId / SuiAddress: 0x + 64 lowercase hex chars (32 bytes). Short forms
  such as "0x2" are left-padded to the full width.
- Network: mainnet | testnet | devnet | localnet.
"""

import re
from typing import Annotated, Literal

from pydantic import AfterValidator

_HEX_RE = re.compile(r"^[0-9a-f]+$")


def normalize_object_id(v: str) -> str:
    if not isinstance(v, str):
        raise TypeError("value must be a string")
    s = v.strip().lower()
    if not s.startswith("0x"):
        raise ValueError("object id must start with 0x")
    h = s[2:]
    if not h or len(h) > 64 or not _HEX_RE.match(h):
        raise ValueError("object id must be 0x followed by 1..64 hex chars")
    return "0x" + h.rjust(64, "0")


ObjectId = Annotated[str, AfterValidator(normalize_object_id)]
SuiAddress = Annotated[str, AfterValidator(normalize_object_id)]
Network = Literal["mainnet", "testnet", "devnet", "localnet"]


__all__ = ["ObjectId", "SuiAddress", "Network", "normalize_object_id"]
