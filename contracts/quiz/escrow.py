# -*- coding: utf-8 -*-
"""
contracts.quiz.escrow
=====================

Per-quiz escrow: holds the reward pool for one quiz, pays each participant
immediately when the bot records their result, and returns whatever is left
to the quiz creator when the quiz ends.

State machine
-------------
ACTIVE → ENDED (terminal). ``terminate`` performs the only transition; the
authorized bot may call it at any time, anyone else once the 24-hour window
from ``creation_time`` has elapsed.

Results
-------
``record_result(participant, correct, incorrect)`` (bot only) checks, first
failure wins:

1. caller is the authorized bot       "QuizEscrow: Only authorized bot can call this function"
2. quiz not ended                      "QuizEscrow: Quiz has ended"
3. quiz not expired                    "QuizEscrow: Quiz has expired"
4. participant is not the null address "QuizEscrow: Invalid participant address"
5. counts non-negative, totals in u256 "QuizEscrow: Invalid answer count"
6. at least one answer                 "QuizEscrow: Must have at least one answer"
7. participant not recorded before     "QuizEscrow: Participant already recorded"
8. payout fits the remaining balance   "QuizEscrow: Insufficient funds for payout"

then records the result and pays ``correct*correctReward + incorrect*incorrectReward``
in the same call. Zero funding and zero rewards are valid (free quizzes).

Storage layout
--------------
Integers are 32-byte big-endian u256, addresses 20 raw bytes.

    "qz:creator"   -> address
    "qz:bot"       -> address
    "qz:rc"        -> correct reward (u256)
    "qz:ri"        -> incorrect reward (u256)
    "qz:fund"      -> funding amount (u256)
    "qz:paid"      -> total paid out (u256)
    "qz:ended"     -> b"\\x01" once ended
    "qz:t0"        -> creation time (u256, Unix seconds)
    "qz:n"         -> total participants (u256)
    "qz:nc"        -> total correct answers (u256)
    "qz:ni"        -> total incorrect answers (u256)
    "qz:r:" + addr -> participant record: correct|incorrect|payout (3 × u256)
    "qz:l"         -> participant list (array of addresses)

Events (names)
--------------
- "QuizCreated"            {creator, authorizedBot, fundingAmount, correctReward, incorrectReward}
- "QuizResultRecorded"     {participant, correctCount, incorrectCount, payout}
- "QuizEnded"              {totalParticipants, totalPaidOut}
- "UnclaimedFundsReturned" {creator, amount}
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Final, List

from execution.errors import (
    Expired,
    InsufficientFunds,
    InvalidArgument,
    InvalidState,
    Unauthorized,
)
from execution.logging import get_logger
from execution.metrics import observe_payout
from execution.state.accounts import U256_MAX
from execution.types.address import AddressLike, address_bytes, is_zero_address, to_address

from ..stdlib.base import Contract, external, payable, view

__all__ = [
    "QUIZ_DURATION",
    "ParticipantResult",
    "QuizStats",
    "QuizEscrow",
]

log = get_logger(__name__)

QUIZ_DURATION: Final[int] = 24 * 60 * 60

_K_CREATOR: Final[bytes] = b"qz:creator"
_K_BOT: Final[bytes] = b"qz:bot"
_K_REWARD_CORRECT: Final[bytes] = b"qz:rc"
_K_REWARD_INCORRECT: Final[bytes] = b"qz:ri"
_K_FUNDING: Final[bytes] = b"qz:fund"
_K_PAID: Final[bytes] = b"qz:paid"
_K_ENDED: Final[bytes] = b"qz:ended"
_K_CREATED_AT: Final[bytes] = b"qz:t0"
_K_PARTICIPANTS: Final[bytes] = b"qz:n"
_K_CORRECT: Final[bytes] = b"qz:nc"
_K_INCORRECT: Final[bytes] = b"qz:ni"
_P_RESULT: Final[bytes] = b"qz:r:"
_P_LIST: Final[bytes] = b"qz:l"


@dataclass(frozen=True)
class ParticipantResult:
    correct_count: int = 0
    incorrect_count: int = 0
    total_payout: int = 0
    has_participated: bool = False

    def to_bytes(self) -> bytes:
        return b"".join(n.to_bytes(32, "big") for n in (self.correct_count, self.incorrect_count, self.total_payout))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "ParticipantResult":
        if not raw:
            return cls()
        c, i, p = (int.from_bytes(raw[k:k + 32], "big") for k in (0, 32, 64))
        return cls(correct_count=c, incorrect_count=i, total_payout=p, has_participated=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuizStats:
    total_participants: int
    total_correct_answers: int
    total_incorrect_answers: int
    total_paid_out: int
    remaining_balance: int
    is_expired: bool
    is_ended: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QuizEscrow(Contract):
    """Escrow for a single quiz; see module docstring for the rules."""

    @payable
    def constructor(
        self,
        creator: AddressLike,
        authorized_bot: AddressLike,
        correct_reward: int,
        incorrect_reward: int,
    ) -> None:
        self.require(not is_zero_address(authorized_bot), "QuizEscrow: Invalid bot address", InvalidArgument)
        self.require(not is_zero_address(creator), "QuizEscrow: Invalid creator address", InvalidArgument)
        self.require(
            0 <= correct_reward <= U256_MAX and 0 <= incorrect_reward <= U256_MAX,
            "QuizEscrow: Invalid reward amount",
            InvalidArgument,
        )

        self._set_address(_K_CREATOR, creator)
        self._set_address(_K_BOT, authorized_bot)
        self._set_u256(_K_REWARD_CORRECT, correct_reward)
        self._set_u256(_K_REWARD_INCORRECT, incorrect_reward)
        self._set_u256(_K_FUNDING, self.msg.value)
        self._set_u256(_K_CREATED_AT, self.msg.timestamp)

        self.emit(
            "QuizCreated",
            creator=to_address(creator),
            authorizedBot=to_address(authorized_bot),
            fundingAmount=self.msg.value,
            correctReward=correct_reward,
            incorrectReward=incorrect_reward,
        )

    # ------------------------------------------------------------------ guards

    def _only_bot(self) -> None:
        self.require(
            self.msg.sender == self._get_address(_K_BOT),
            "QuizEscrow: Only authorized bot can call this function",
            Unauthorized,
            caller=self.msg.sender,
        )

    def _expired(self) -> bool:
        return self.now() >= self._get_u256(_K_CREATED_AT) + QUIZ_DURATION

    # ------------------------------------------------------------------ entrypoints

    @external
    def record_result(self, participant: AddressLike, correct_count: int, incorrect_count: int) -> int:
        """Record one participant's answers and pay them. Returns the payout in wei."""
        self._only_bot()
        self.require(not self._get_bool(_K_ENDED), "QuizEscrow: Quiz has ended", InvalidState)
        self.require(not self._expired(), "QuizEscrow: Quiz has expired", Expired)
        self.require(not is_zero_address(participant), "QuizEscrow: Invalid participant address", InvalidArgument)
        self.require(
            0 <= correct_count <= U256_MAX - self._get_u256(_K_CORRECT)
            and 0 <= incorrect_count <= U256_MAX - self._get_u256(_K_INCORRECT),
            "QuizEscrow: Invalid answer count",
            InvalidArgument,
        )
        self.require(correct_count + incorrect_count > 0, "QuizEscrow: Must have at least one answer", InvalidArgument)

        key = _P_RESULT + address_bytes(participant)
        self.require(not self._sget(key), "QuizEscrow: Participant already recorded", InvalidState)

        payout = (
            correct_count * self._get_u256(_K_REWARD_CORRECT)
            + incorrect_count * self._get_u256(_K_REWARD_INCORRECT)
        )
        remaining = self.balance()
        self.require(
            payout <= remaining,
            "QuizEscrow: Insufficient funds for payout",
            InsufficientFunds,
            payout=payout,
            remaining=remaining,
        )

        participant = to_address(participant)
        self._sset(key, ParticipantResult(correct_count, incorrect_count, payout, True).to_bytes())
        self._array_push(_P_LIST, address_bytes(participant))
        self._add_u256(_K_PARTICIPANTS, 1)
        self._add_u256(_K_CORRECT, correct_count)
        self._add_u256(_K_INCORRECT, incorrect_count)
        self._add_u256(_K_PAID, payout)

        self._transfer(participant, payout)
        self.emit(
            "QuizResultRecorded",
            participant=participant,
            correctCount=correct_count,
            incorrectCount=incorrect_count,
            payout=payout,
        )
        escrow = self.address

        def _settled() -> None:
            observe_payout(payout, kind="reward")
            log.info("quiz_result_recorded", escrow=escrow, participant=participant, payout=payout)

        self._after_commit(_settled)
        return payout

    @external
    def terminate(self) -> int:
        """End the quiz and return the unclaimed balance to the creator. Returns the amount swept."""
        self.require(not self._get_bool(_K_ENDED), "QuizEscrow: Quiz already ended", InvalidState)
        self.require(
            self.msg.sender == self._get_address(_K_BOT) or self._expired(),
            "QuizEscrow: Quiz not expired and caller not authorized bot",
            Unauthorized,
            caller=self.msg.sender,
        )

        self._set_bool(_K_ENDED, True)
        creator = self._get_address(_K_CREATOR)
        remaining = self.balance()
        self.emit(
            "QuizEnded",
            totalParticipants=self._get_u256(_K_PARTICIPANTS),
            totalPaidOut=self._get_u256(_K_PAID),
        )
        if remaining > 0:
            self._transfer(creator, remaining)
            self.emit("UnclaimedFundsReturned", creator=creator, amount=remaining)

        escrow, caller = self.address, self.msg.sender

        def _settled() -> None:
            observe_payout(remaining, kind="refund")
            log.info("quiz_ended", escrow=escrow, by=caller, returned=remaining)

        self._after_commit(_settled)
        return remaining

    # ------------------------------------------------------------------ views

    @view
    def creator(self) -> str:
        return self._get_address(_K_CREATOR)

    @view
    def authorized_bot(self) -> str:
        return self._get_address(_K_BOT)

    @view
    def correct_reward(self) -> int:
        return self._get_u256(_K_REWARD_CORRECT)

    @view
    def incorrect_reward(self) -> int:
        return self._get_u256(_K_REWARD_INCORRECT)

    @view
    def funding_amount(self) -> int:
        return self._get_u256(_K_FUNDING)

    @view
    def total_paid_out(self) -> int:
        return self._get_u256(_K_PAID)

    @view
    def is_ended(self) -> bool:
        return self._get_bool(_K_ENDED)

    @view
    def creation_time(self) -> int:
        return self._get_u256(_K_CREATED_AT)

    @view
    def total_participants(self) -> int:
        return self._get_u256(_K_PARTICIPANTS)

    @view
    def total_correct_answers(self) -> int:
        return self._get_u256(_K_CORRECT)

    @view
    def total_incorrect_answers(self) -> int:
        return self._get_u256(_K_INCORRECT)

    @view
    def get_balance(self) -> int:
        return self.balance()

    @view
    def get_participant_result(self, participant: AddressLike) -> ParticipantResult:
        """Unknown participants read as ``has_participated=False`` with zero counts."""
        return ParticipantResult.from_bytes(self._sget(_P_RESULT + address_bytes(participant)))

    @view
    def get_all_participants(self) -> List[str]:
        return [to_address(raw) for raw in self._array_slice(_P_LIST)]

    @view
    def is_expired(self) -> bool:
        return self._expired()

    @view
    def get_remaining_time(self) -> int:
        """Seconds until expiry; zero once expired, never negative."""
        return max(0, self._get_u256(_K_CREATED_AT) + QUIZ_DURATION - self.now())

    @view
    def get_quiz_stats(self) -> QuizStats:
        return QuizStats(
            total_participants=self._get_u256(_K_PARTICIPANTS),
            total_correct_answers=self._get_u256(_K_CORRECT),
            total_incorrect_answers=self._get_u256(_K_INCORRECT),
            total_paid_out=self._get_u256(_K_PAID),
            remaining_balance=self.balance(),
            is_expired=self._expired(),
            is_ended=self._get_bool(_K_ENDED),
        )
