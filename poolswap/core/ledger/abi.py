"""
Calldata encoding and return-data decoding for the token and pool programs.

Only the static types these programs use are supported (``uint256`` and
``address``), which keeps the encoding a matter of 32-byte words.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from eth_utils import is_address, keccak

MAX_UINT256 = 2**256 - 1

# Error(string) revert payload selector
REVERT_ERROR_SELECTOR = "0x08c379a0"

TOKEN_BALANCE_OF = "balanceOf(address)"
TOKEN_ALLOWANCE = "allowance(address,address)"
TOKEN_APPROVE = "approve(address,uint256)"
TOKEN_DECIMALS = "decimals()"

POOL_GET_RESERVES = "getReserves()"
POOL_SWAP_EXACT_TOKENS_FOR_TOKENS = "swapExactTokensForTokens(uint256,uint256)"
POOL_ADD_LIQUIDITY = "addLiquidity(uint256,uint256)"


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def function_selector(signature: str) -> str:
    """4-byte selector for a canonical function signature, 0x-prefixed."""
    return "0x" + keccak(text=signature)[:4].hex()


def encode_uint256(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"uint256 must be an int, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"Value out of uint256 range: {value}")
    return format(value, "064x")


def encode_address(address: str) -> str:
    if not is_address(address):
        raise ValueError(f"Invalid address: {address}")
    return _strip_0x(address).lower().rjust(64, "0")


def _argument_types(signature: str) -> Tuple[str, ...]:
    inner = signature[signature.index("(") + 1:signature.rindex(")")]
    return tuple(t for t in inner.split(",") if t)


def encode_call(signature: str, *args: Any) -> str:
    """Encode a call to ``signature`` with static arguments."""
    types = _argument_types(signature)
    if len(types) != len(args):
        raise ValueError(f"{signature} takes {len(types)} arguments, got {len(args)}")

    words = []
    for arg_type, arg in zip(types, args):
        if arg_type == "address":
            words.append(encode_address(arg))
        elif arg_type == "uint256":
            words.append(encode_uint256(arg))
        else:
            raise ValueError(f"Unsupported ABI type: {arg_type}")
    return function_selector(signature) + "".join(words)


def decode_uint256_words(data: Optional[str], count: int) -> Tuple[int, ...]:
    """Decode the first ``count`` 32-byte words of return data as uints."""
    if not isinstance(data, str):
        raise ValueError(f"Expected hex return data, got {type(data).__name__}")
    raw = _strip_0x(data)
    if len(raw) < 64 * count:
        # "0x" usually means the target is not a contract
        raise ValueError(f"Return data too short: expected {count} words, got {len(raw) // 64}")
    return tuple(int(raw[i * 64:(i + 1) * 64], 16) for i in range(count))


def decode_revert_reason(data: Any) -> Optional[str]:
    """Extract the message from an ``Error(string)`` revert payload."""
    if not isinstance(data, str) or not data.startswith(REVERT_ERROR_SELECTOR):
        return None
    raw = _strip_0x(data)[8:]
    try:
        offset = int(raw[:64], 16) * 2
        length = int(raw[offset:offset + 64], 16) * 2
        message = bytes.fromhex(raw[offset + 64:offset + 64 + length])
    except ValueError:
        return None
    return message.decode("utf-8", errors="replace")
