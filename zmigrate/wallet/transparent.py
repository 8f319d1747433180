"""
Transparent script decoding and address rendering.

Recognises P2PKH and P2SH script_pubkeys and the pubkey push at the end
of a P2PKH script_sig, and renders the matching base58check address for
the wallet's network.
"""

from __future__ import annotations

import hashlib

import base58

P2PKH = "p2pkh"
P2SH = "p2sh"

# Two-byte base58check version prefixes per network.
ADDRESS_PREFIXES: dict[str, dict[str, bytes]] = {
    "main": {P2PKH: b"\x1c\xb8", P2SH: b"\x1c\xbd"},
    "test": {P2PKH: b"\x1d\x25", P2SH: b"\x1c\xba"},
    "regtest": {P2PKH: b"\x1d\x25", P2SH: b"\x1c\xba"},
}

OP_DUP = 0x76
OP_HASH160 = 0xA9
OP_EQUALVERIFY = 0x88
OP_CHECKSIG = 0xAC
OP_EQUAL = 0x87
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
HASH160_LEN = 20


def ripemd160_available() -> bool:
    """RIPEMD-160 is provided by OpenSSL and is missing from some builds."""
    return "ripemd160" in hashlib.algorithms_available


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256, as used for transparent key and script hashes."""
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()


def encode_address(payload: bytes, kind: str, network: str = "main") -> str:
    """Render a 20-byte key or script hash as a base58check transparent address."""
    if len(payload) != HASH160_LEN:
        raise ValueError(f"Transparent address payload must be {HASH160_LEN} bytes, got {len(payload)}")
    try:
        prefix = ADDRESS_PREFIXES[network][kind]
    except KeyError:
        raise ValueError(f"Unsupported network/kind: {network}/{kind}") from None
    return base58.b58encode_check(prefix + payload).decode("ascii")


def decode_address(address: str) -> tuple[str, bytes]:
    """Inverse of encode_address: return (kind, 20-byte hash). Network is not checked."""
    raw = base58.b58decode_check(address)
    prefix, payload = raw[:2], raw[2:]
    for prefixes in ADDRESS_PREFIXES.values():
        for kind, value in prefixes.items():
            if value == prefix and len(payload) == HASH160_LEN:
                return kind, payload
    raise ValueError(f"Not a transparent address: {address}")


def address_from_script_pubkey(script: bytes, network: str = "main") -> str | None:
    """Address paid by a standard P2PKH or P2SH output script; None for anything else."""
    if (
        len(script) == 25
        and script[0] == OP_DUP
        and script[1] == OP_HASH160
        and script[2] == HASH160_LEN
        and script[23] == OP_EQUALVERIFY
        and script[24] == OP_CHECKSIG
    ):
        return encode_address(script[3:23], P2PKH, network)
    if (
        len(script) == 23
        and script[0] == OP_HASH160
        and script[1] == HASH160_LEN
        and script[22] == OP_EQUAL
    ):
        return encode_address(script[2:22], P2SH, network)
    return None


def script_pushes(script: bytes) -> list[bytes]:
    """
    Split a push-only script into its data pushes.

    Raises ValueError on non-push opcodes or truncated pushes.
    """
    pushes: list[bytes] = []
    i = 0
    while i < len(script):
        op = script[i]
        i += 1
        if 0x01 <= op <= 0x4B:
            size = op
        elif op == OP_PUSHDATA1:
            if i + 1 > len(script):
                raise ValueError("Truncated OP_PUSHDATA1")
            size = script[i]
            i += 1
        elif op == OP_PUSHDATA2:
            if i + 2 > len(script):
                raise ValueError("Truncated OP_PUSHDATA2")
            size = int.from_bytes(script[i:i + 2], "little")
            i += 2
        elif op == 0x00:
            pushes.append(b"")
            continue
        else:
            raise ValueError(f"Non-push opcode 0x{op:02x} in script_sig")
        if i + size > len(script):
            raise ValueError("Truncated push in script_sig")
        pushes.append(script[i:i + size])
        i += size
    return pushes


def _is_pubkey(data: bytes) -> bool:
    if len(data) == 33 and data[0] in (0x02, 0x03):
        return True
    return len(data) == 65 and data[0] == 0x04


def pubkey_from_script_sig(script_sig: bytes) -> bytes | None:
    """Pubkey revealed by a P2PKH script_sig (<sig> <pubkey>); None for other shapes."""
    try:
        pushes = script_pushes(script_sig)
    except ValueError:
        return None
    if len(pushes) != 2 or not _is_pubkey(pushes[1]):
        return None
    return pushes[1]


def address_from_pubkey(pubkey: bytes, network: str = "main") -> str:
    return encode_address(hash160(pubkey), P2PKH, network)


def address_from_script_sig(script_sig: bytes, network: str = "main") -> str | None:
    """P2PKH address whose key signed this input, if the script_sig reveals it."""
    pubkey = pubkey_from_script_sig(script_sig)
    if pubkey is None:
        return None
    return address_from_pubkey(pubkey, network)
