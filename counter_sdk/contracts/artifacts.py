"""
Loading compiled contract code.

Compilation happens outside this SDK. Its output is accepted in two forms:

- a JSON artifact ``{"hex": "<boc hex>", "hash": "<code hash hex>", ...}``
  (the `build/<Name>.compiled.json` files written by the usual toolchain);
  when ``hash`` is present it is checked against the decoded cell;
- a raw BOC file (``.boc`` / ``.cell``).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from ..cell import Cell, from_boc
from ..errors import DecodeError
from ..utils.bytes import from_hex

__all__ = ["load_compiled", "code_from_hex"]


def code_from_hex(text: str) -> Cell:
    try:
        raw = from_hex(text)
    except ValueError as e:
        raise DecodeError(f"invalid BOC hex: {e}") from e
    return from_boc(raw)


def load_compiled(path: Union[str, Path]) -> Cell:
    """Read a compiled code artifact and return its root cell."""
    p = Path(path)
    raw = p.read_bytes()
    if p.suffix.lower() != ".json":
        return from_boc(raw)

    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"compiled artifact is not valid JSON: {p}") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("hex"), str):
        raise DecodeError(f"compiled artifact has no 'hex' field: {p}")

    code = code_from_hex(doc["hex"])
    expected = doc.get("hash")
    if isinstance(expected, str) and expected.lower() != code.hash().hex():
        raise DecodeError(f"code hash mismatch in {p}: expected {expected}, got {code.hash().hex()}")
    return code
