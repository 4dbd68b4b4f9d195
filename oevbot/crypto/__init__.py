"""
Hashing and encoding primitives for oevbot.

This module provides:
- Keccak-256 (EVM-compatible hashing)
- ABI encoding helpers used to derive auction identifiers
- Hex/bytes and address conversions

Design Notes:
-------------
Every identifier the auction contract verifies (auction offset, bid topic,
bid id, bid details hash) is a Keccak-256 digest over an exact Solidity
encoding. `abi_encode` mirrors `abi.encode` and `abi_encode_packed` mirrors
`abi.encodePacked`; both delegate to eth-abi so byte layouts match the
contract.
"""

import secrets
from typing import Any, Sequence

from Crypto.Hash import keccak
from eth_abi import decode, encode
from eth_abi.packed import encode_packed
from eth_utils import to_checksum_address


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: auction offsets, bid topics, bid ids, OEV template ids.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def random_bytes32() -> bytes:
    """Draw 32 bytes from the OS CSPRNG."""
    return secrets.token_bytes(32)


# =============================================================================
# ABI Encoding
# =============================================================================


def abi_encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Solidity `abi.encode` equivalent."""
    return encode(list(types), list(values))


def abi_encode_packed(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Solidity `abi.encodePacked` equivalent."""
    return encode_packed(list(types), list(values))


def abi_decode(types: Sequence[str], data: bytes) -> tuple:
    """Solidity `abi.decode` equivalent."""
    return decode(list(types), data)


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_to_bytes(address: str) -> bytes:
    """Convert a 0x-prefixed address to its 20 raw bytes."""
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address}")
    return hex_to_bytes(address)


def checksum_address(address: str) -> str:
    """Return the EIP-55 checksummed form of an address."""
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address}")
    return to_checksum_address(address)


__all__ = [
    "keccak256",
    "random_bytes32",
    "abi_encode",
    "abi_encode_packed",
    "abi_decode",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "address_to_bytes",
    "checksum_address",
]
