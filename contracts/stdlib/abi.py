# -*- coding: utf-8 -*-
"""
contracts.stdlib.abi
====================

Parameter blobs passed through the registry to a handler.

The registry treats ``params`` as opaque bytes; each handler type owns its
schema. The quiz handler's schema is the Ethereum ABI tuple
``(uint256 correctReward, uint256 incorrectReward)``, byte-compatible with
``ethers.utils.defaultAbiCoder.encode(["uint256", "uint256"], [...])`` so blobs
built by the Discord bot decode unchanged.

    blob = encode_quiz_params(10**16, 5 * 10**15)
    correct, incorrect = decode_quiz_params(blob)
"""
from __future__ import annotations

from typing import Final, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from execution.errors import InvalidArgument

__all__ = [
    "QUIZ_PARAMS_TYPES",
    "encode_params",
    "decode_params",
    "encode_quiz_params",
    "decode_quiz_params",
]

QUIZ_PARAMS_TYPES: Final[Tuple[str, str]] = ("uint256", "uint256")


def encode_params(types: Sequence[str], values: Sequence[object]) -> bytes:
    try:
        return encode(list(types), list(values))
    except (EncodingError, TypeError, ValueError) as exc:
        raise InvalidArgument(f"cannot encode params as {list(types)}", data={"error": str(exc)}) from exc


def decode_params(types: Sequence[str], blob: bytes) -> Tuple[object, ...]:
    try:
        return tuple(decode(list(types), bytes(blob)))
    except (DecodingError, TypeError, ValueError) as exc:
        raise InvalidArgument(f"cannot decode params as {list(types)}", data={"error": str(exc)}) from exc


def encode_quiz_params(correct_reward: int, incorrect_reward: int) -> bytes:
    return encode_params(QUIZ_PARAMS_TYPES, (int(correct_reward), int(incorrect_reward)))


def decode_quiz_params(blob: bytes) -> Tuple[int, int]:
    """Decode ``(correctReward, incorrectReward)`` from an ABI blob."""
    correct, incorrect = decode_params(QUIZ_PARAMS_TYPES, blob)
    return int(correct), int(incorrect)  # type: ignore[call-overload]
