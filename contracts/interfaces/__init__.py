# -*- coding: utf-8 -*-
"""
contracts.interfaces
====================

Capability interfaces shared between the registry and the handlers it
dispatches to.

Why this exists
---------------
The registry (``MotherFactory``) must stay agnostic of what a handler deploys
and how its ``params`` blob is shaped. It therefore talks to every handler
through :class:`ContractHandler`, a structural protocol with exactly three
operations:

- ``deploy_contract(creator, params)`` (payable): build one contract, return its address
- ``get_deployment_fee(params)``: fee the registry must see attached, in wei
- ``get_handler_info()``: static :class:`HandlerInfo` metadata

New contract types are added by registering another handler at runtime, never
by editing the registry.

Usage
-----
    from contracts.interfaces import ContractHandler, HandlerInfo

    class MyHandler(Contract):
        @payable
        def deploy_contract(self, creator, params) -> str: ...
        @view
        def get_deployment_fee(self, params) -> int: ...
        @view
        def get_handler_info(self) -> HandlerInfo: ...

    assert isinstance(chain.at(handler_address), ContractHandler)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Protocol, runtime_checkable

__all__ = [
    "HandlerInfo",
    "ContractHandler",
    "implements_handler",
]


@dataclass(frozen=True)
class HandlerInfo:
    """
    Static description of a handler.

    Attributes
    ----------
    contract_type : str
        Registry key this handler is meant to serve (e.g. "QuizEscrow").
    version : str
        Semver of the handler implementation.
    description : str
        Short human-readable description.
    """
    contract_type: str
    version: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractType": self.contract_type,
            "version": self.version,
            "description": self.description,
        }


@runtime_checkable
class ContractHandler(Protocol):
    """Structural type of a deployable-contract handler."""

    address: str

    def deploy_contract(self, creator: str, params: bytes) -> str: ...

    def get_deployment_fee(self, params: bytes) -> int: ...

    def get_handler_info(self) -> HandlerInfo: ...


def implements_handler(obj: Any) -> bool:
    """True if `obj` (a contract object) exposes the handler capability."""
    return isinstance(obj, ContractHandler)
