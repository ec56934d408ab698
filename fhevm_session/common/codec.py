"""
Type codec: validation and normalization of plaintext values per data kind.

Validation always runs before the crypto engine is touched, so a value that
fails here never reaches an engine primitive.
"""

from __future__ import annotations

import re
from typing import Any

from fhevm_session.common.exceptions import FormatError, RangeError
from fhevm_session.common.models import DataKind

ADDRESS_LEN = 42
_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")
_HANDLE_RE = re.compile(r"0x[a-fA-F0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?\d+")


def coerce_kind(kind: DataKind | str) -> DataKind:
    """Turn a kind name into a DataKind, FormatError for anything else."""
    if isinstance(kind, DataKind):
        return kind
    try:
        return DataKind(kind)
    except ValueError as err:
        msg = f"unknown type: {kind}"
        raise FormatError(msg) from err


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and _ADDRESS_RE.fullmatch(value) is not None


def validate_handle(handle: Any) -> str:
    """Check that a ciphertext handle is a non-empty 0x hex string."""
    if not isinstance(handle, str):
        msg = "Handle must be a string"
        raise FormatError(msg)
    if not handle:
        msg = "Handle cannot be empty"
        raise FormatError(msg)
    if not _HANDLE_RE.fullmatch(handle):
        msg = "Handle must be a valid hex string"
        raise FormatError(msg)
    return handle


def validate_address(value: Any) -> str:
    if not isinstance(value, str):
        msg = "Address must be a string"
        raise FormatError(msg)
    if len(value) != ADDRESS_LEN or not _ADDRESS_RE.fullmatch(value):
        msg = "Invalid Ethereum address format"
        raise FormatError(msg)
    return value


def _to_int(value: Any) -> int:
    # bool is an int subclass; reject it so True never encrypts as uint 1
    if isinstance(value, bool):
        msg = "Value must be a number, not a boolean"
        raise FormatError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            msg = "Value must be an integer"
            raise FormatError(msg)
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x") and _HANDLE_RE.fullmatch(text.lower()):
            return int(text, 16)
        if _DECIMAL_RE.fullmatch(text):
            return int(text, 10)
    msg = f"Value must be a number: {value!r}"
    raise FormatError(msg)


def validate_uint(value: Any, bits: int) -> int:
    num = _to_int(value)
    if num < 0:
        msg = "Value must be non-negative"
        raise RangeError(msg)
    max_value = 2**bits - 1
    if num > max_value:
        msg = f"Value exceeds maximum for uint{bits}: {max_value}"
        raise RangeError(msg)
    return num


def validate_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1, "0", "1") and not isinstance(value, float):
        return bool(int(value))
    msg = "Value must be a boolean or 0/1"
    raise FormatError(msg)


def validate(value: Any, kind: DataKind | str) -> int | str | bool:
    """Validate value against kind and return its normalized form.

    Args:
        value: Plaintext value (number, string or boolean)
        kind: Data kind name or DataKind

    Returns:
        int for unsigned kinds, str for address, bool for bool

    Raises:
        FormatError: unknown kind or wrong value shape
        RangeError: numeric value outside the kind's range
    """
    data_kind = coerce_kind(kind)
    if value is None:
        msg = "Value cannot be undefined or null"
        raise FormatError(msg)

    if data_kind.is_unsigned:
        return validate_uint(value, data_kind.bits)
    if data_kind is DataKind.ADDRESS:
        return validate_address(value)
    return validate_bool(value)


def stringify(value: Any) -> str:
    """String form of a plaintext value, booleans as true/false."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
