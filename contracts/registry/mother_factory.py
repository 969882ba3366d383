# -*- coding: utf-8 -*-
"""
contracts.registry.mother_factory
=================================

Top-level registry: maps a contract-type name to a handler and records every
deployment made through it. It knows nothing about quizzes; each handler is
reached only through the :class:`~contracts.interfaces.ContractHandler`
capability (deploy, fee quote, info).

Deployment flow
---------------
``deploy_contract(type, params)`` with value attached:

1. the type must have a registered handler
2. restricted types accept only the factory's ``authorized_bot`` as caller
3. ``value >= handler.get_deployment_fee(params)``
4. ``handler.deploy_contract(caller, params)`` with the **entire** value
5. the returned address must be non-null, then it is appended to the
   caller's list and to the global ledger

Any failure along the chain reverts every step, handler and escrow included.

Ownership
---------
``initialize(bot)`` makes the caller the owner. Owner-only: register/remove
handlers, toggle per-type deploy restriction, transfer/renounce ownership.
Renouncing is permanent; no handler can be registered afterwards.

Storage layout
--------------
    "mf:bot"             -> authorized bot address
    "mf:h:"  + type      -> handler address (absent when not registered)
    "mf:ti:" + type      -> 1 + index of type in "mf:types" (absent when not registered)
    "mf:types"           -> array of type names (swap-and-pop on removal)
    "mf:rs:" + type      -> b"\\x01" when deployments of type are bot-only
    "mf:u:"  + user      -> array of addresses deployed by user
    "mf:all"             -> array of every deployed address
    "mf:total"           -> total deployed (u256), always len("mf:all")

Events (names)
--------------
- "HandlerRegistered"     {contractType, handler, registeredBy}
- "HandlerRemoved"        {contractType, handler, removedBy}
- "DeploymentRestricted"  {contractType, restricted}
- "ContractDeployed"      {creator, contractType, contractAddress, handler, feePaid}
- "OwnershipTransferred"  {previousOwner, newOwner}
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Final, List, Optional

from execution.errors import InsufficientFunds, InvalidArgument, InvalidState, Unauthorized
from execution.logging import get_logger
from execution.metrics import observe_deployment
from execution.types.address import (
    ZERO_ADDRESS,
    AddressLike,
    address_bytes,
    is_valid_address,
    is_zero_address,
    to_address,
)

from ..interfaces import HandlerInfo, implements_handler
from ..stdlib.access import Initializable, Ownable
from ..stdlib.base import external, payable, view

__all__ = ["FactoryStats", "MotherFactory"]

log = get_logger(__name__)

_K_BOT: Final[bytes] = b"mf:bot"
_P_HANDLER: Final[bytes] = b"mf:h:"
_P_TYPE_INDEX: Final[bytes] = b"mf:ti:"
_P_TYPES: Final[bytes] = b"mf:types"
_P_RESTRICTED: Final[bytes] = b"mf:rs:"
_P_USER: Final[bytes] = b"mf:u:"
_P_ALL: Final[bytes] = b"mf:all"
_K_TOTAL: Final[bytes] = b"mf:total"


@dataclass(frozen=True)
class FactoryStats:
    total_deployed: int
    total_handlers: int
    current_owner: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _type_key(contract_type: str) -> bytes:
    return contract_type.encode("utf-8")


class MotherFactory(Ownable, Initializable):
    """Registry of contract-type handlers plus the deployment ledger."""

    def constructor(self, authorized_bot: Optional[AddressLike] = None) -> None:
        if authorized_bot is not None:
            self._setup(authorized_bot)

    @external
    def initialize(self, authorized_bot: AddressLike) -> None:
        self._setup(authorized_bot)

    def _setup(self, authorized_bot: AddressLike) -> None:
        self._initializer()
        self._init_owner(self.msg.sender)
        self._set_address(_K_BOT, authorized_bot)

    # ------------------------------------------------------------------ ownership

    @external
    def transfer_ownership(self, new_owner: AddressLike) -> None:
        self._only_owner()
        self.require(not is_zero_address(new_owner), "OwnableInvalidOwner", InvalidArgument, owner=ZERO_ADDRESS)
        self.require(
            to_address(new_owner) != self.owner(),
            "MotherFactory: New owner cannot be current owner",
            InvalidArgument,
        )
        self._init_owner(new_owner)

    # ------------------------------------------------------------------ handler admin

    @external
    def register_handler(self, contract_type: str, handler: AddressLike) -> None:
        """Register (or replace) the handler for `contract_type`."""
        self._only_owner()
        self.require(
            is_valid_address(handler)
            and not is_zero_address(handler)
            and implements_handler(self._contract_at(handler)),
            "MotherFactory: Invalid handler address",
            InvalidArgument,
            handler=str(handler),
        )
        self.require(bool(contract_type), "MotherFactory: Contract type cannot be empty", InvalidArgument)
        handler = to_address(handler)

        key = _type_key(contract_type)
        if not self._get_u256(_P_TYPE_INDEX + key):
            index = self._array_push(_P_TYPES, key)
            self._set_u256(_P_TYPE_INDEX + key, index + 1)
        self._set_address(_P_HANDLER + key, handler)

        self.emit(
            "HandlerRegistered",
            contractType=contract_type,
            handler=handler,
            registeredBy=self.msg.sender,
        )
        factory = self.address
        self._after_commit(
            lambda: log.info("handler_registered", factory=factory, contract_type=contract_type, handler=handler)
        )

    @external
    def remove_handler(self, contract_type: str) -> None:
        self._only_owner()
        key = _type_key(contract_type)
        slot = self._get_u256(_P_TYPE_INDEX + key)
        self.require(slot > 0, "MotherFactory: Handler not registered for contract type", InvalidState)

        handler = self._get_address(_P_HANDLER + key)
        index = slot - 1
        last_index = self._array_len(_P_TYPES) - 1
        if index != last_index:
            moved = self._array_get(_P_TYPES, last_index)
            self._array_set(_P_TYPES, index, moved)
            self._set_u256(_P_TYPE_INDEX + moved, index + 1)
        self._array_pop(_P_TYPES)
        self._set_u256(_P_TYPE_INDEX + key, 0)
        self._set_address(_P_HANDLER + key, ZERO_ADDRESS)
        self._set_bool(_P_RESTRICTED + key, False)

        self.emit("HandlerRemoved", contractType=contract_type, handler=handler, removedBy=self.msg.sender)
        factory = self.address
        self._after_commit(
            lambda: log.info("handler_removed", factory=factory, contract_type=contract_type, handler=handler)
        )

    @external
    def set_deployment_restricted(self, contract_type: str, restricted: bool) -> None:
        """Owner-only: make deployments of `contract_type` bot-only (or open again)."""
        self._only_owner()
        key = _type_key(contract_type)
        self.require(
            self._get_u256(_P_TYPE_INDEX + key) > 0,
            "MotherFactory: Handler not registered for contract type",
            InvalidState,
        )
        self._set_bool(_P_RESTRICTED + key, bool(restricted))
        self.emit("DeploymentRestricted", contractType=contract_type, restricted=bool(restricted))

    # ------------------------------------------------------------------ deployment

    def _require_handler(self, contract_type: str) -> str:
        handler = self._get_address(_P_HANDLER + _type_key(contract_type))
        self.require(
            not is_zero_address(handler),
            "MotherFactory: Handler not registered for contract type",
            InvalidState,
            contract_type=contract_type,
        )
        return handler

    @payable
    def deploy_contract(self, contract_type: str, params: bytes) -> str:
        """Deploy a `contract_type` contract via its handler. Returns the new address."""
        handler_addr = self._require_handler(contract_type)
        creator = self.msg.sender
        if self._get_bool(_P_RESTRICTED + _type_key(contract_type)):
            self.require(
                creator == self._get_address(_K_BOT),
                "MotherFactory: Only authorized bot can deploy this type",
                Unauthorized,
                caller=creator,
            )

        handler = self._contract(handler_addr)
        fee = handler.get_deployment_fee(params)
        value = self.msg.value
        self.require(
            value >= fee,
            "MotherFactory: Insufficient payment for deployment fee",
            InsufficientFunds,
            required=fee,
            sent=value,
        )

        deployed = handler.deploy_contract(creator, params, value=value)
        self.require(
            is_valid_address(deployed) and not is_zero_address(deployed),
            "MotherFactory: Deployment failed",
            InvalidState,
        )
        deployed = to_address(deployed)

        self._array_push(_P_USER + address_bytes(creator), address_bytes(deployed))
        self._array_push(_P_ALL, address_bytes(deployed))
        self._add_u256(_K_TOTAL, 1)

        self.emit(
            "ContractDeployed",
            creator=creator,
            contractType=contract_type,
            contractAddress=deployed,
            handler=handler_addr,
            feePaid=fee,
        )
        factory = self.address

        def _settled() -> None:
            observe_deployment(contract_type)
            log.info("contract_deployed", factory=factory, contract_type=contract_type, address=deployed,
                     creator=creator)

        self._after_commit(_settled)
        return deployed

    @view
    def get_deployment_fee(self, contract_type: str, params: bytes = b"") -> int:
        handler = self._require_view_handler(contract_type)
        return self._contract(handler).get_deployment_fee(params)

    def _require_view_handler(self, contract_type: str) -> str:
        handler = self.get_handler(contract_type)
        if is_zero_address(handler):
            raise InvalidState(
                "MotherFactory: Handler not registered for contract type",
                data={"contract_type": contract_type},
            )
        return handler

    # ------------------------------------------------------------------ views

    @view
    def authorized_bot(self) -> str:
        return self._get_address(_K_BOT)

    @view
    def get_handler(self, contract_type: str) -> str:
        """Handler address for `contract_type`, or the null address."""
        return self._get_address(_P_HANDLER + _type_key(contract_type))

    @view
    def is_handler_active(self, contract_type: str) -> bool:
        return self._get_u256(_P_TYPE_INDEX + _type_key(contract_type)) > 0

    @view
    def is_deployment_restricted(self, contract_type: str) -> bool:
        return self._get_bool(_P_RESTRICTED + _type_key(contract_type))

    @view
    def get_contract_types(self) -> List[str]:
        return [raw.decode("utf-8") for raw in self._array_slice(_P_TYPES)]

    @view
    def get_handler_info(self, contract_type: str) -> HandlerInfo:
        handler = self._require_view_handler(contract_type)
        return self._contract(handler).get_handler_info()

    def _page(self, prefix: bytes, offset: int, limit: Optional[int]) -> List[str]:
        if offset < 0 or (limit is not None and limit < 0):
            raise InvalidArgument("offset and limit must be non-negative", data={"offset": offset, "limit": limit})
        cap = self._chain.config.max_page_size
        limit = cap if limit is None else min(limit, cap)
        return [to_address(raw) for raw in self._array_slice(prefix, offset, limit)]

    @view
    def get_deployed_contracts(self, user: AddressLike, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        """Addresses deployed by `user`, oldest first, at most ``max_page_size`` per page."""
        return self._page(_P_USER + address_bytes(user), offset, limit)

    @view
    def get_all_deployed_contracts(self, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        return self._page(_P_ALL, offset, limit)

    @view
    def count_deployed_contracts(self, user: AddressLike) -> int:
        return self._array_len(_P_USER + address_bytes(user))

    @view
    def total_deployed(self) -> int:
        return self._get_u256(_K_TOTAL)

    @view
    def get_factory_stats(self) -> FactoryStats:
        return FactoryStats(
            total_deployed=self._get_u256(_K_TOTAL),
            total_handlers=self._array_len(_P_TYPES),
            current_owner=self.owner(),
        )
