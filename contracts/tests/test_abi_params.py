# -*- coding: utf-8 -*-
"""
Quiz params blob: Ethereum ABI (uint256, uint256), as produced by
ethers.defaultAbiCoder.encode(["uint256", "uint256"], [correct, incorrect]).
"""
from __future__ import annotations

import pytest

from contracts.stdlib.abi import decode_params, decode_quiz_params, encode_params, encode_quiz_params
from execution.errors import InvalidArgument

# defaultAbiCoder.encode(["uint256","uint256"], [parseEther("0.01"), parseEther("0.005")])
ETHERS_BLOB = bytes.fromhex(
    "000000000000000000000000000000000000000000000000002386f26fc10000"
    "0000000000000000000000000000000000000000000000000011c37937e08000"
)


def test_layout_matches_ethers():
    assert encode_quiz_params(10**16, 5 * 10**15) == ETHERS_BLOB
    assert decode_quiz_params(ETHERS_BLOB) == (10**16, 5 * 10**15)


def test_zero_rewards_encode_to_two_zero_words():
    assert encode_quiz_params(0, 0) == bytes(64)


@pytest.mark.parametrize("blob", [b"", b"\x00" * 31, b"\x01" * 40])
def test_short_blobs_are_rejected(blob):
    with pytest.raises(InvalidArgument):
        decode_quiz_params(blob)


def test_out_of_range_values_are_rejected():
    with pytest.raises(InvalidArgument):
        encode_quiz_params(-1, 0)
    with pytest.raises(InvalidArgument):
        encode_quiz_params(2**256, 0)


def test_generic_codec_for_other_handler_types():
    blob = encode_params(("string", "uint8"), ("raffle", 3))
    assert decode_params(("string", "uint8"), blob) == ("raffle", 3)
