"""Shared enums and types used across the engine."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class ItemType(str, enum.Enum):
    """Asset class of an offered or requested item."""

    NATIVE = "native"
    ERC20 = "erc20"
    ERC721 = "erc721"
    ERC1155 = "erc1155"
    ERC721_WITH_CRITERIA = "erc721_with_criteria"
    ERC1155_WITH_CRITERIA = "erc1155_with_criteria"

    @property
    def has_criteria(self) -> bool:
        return self in (ItemType.ERC721_WITH_CRITERIA, ItemType.ERC1155_WITH_CRITERIA)

    @property
    def is_fungible(self) -> bool:
        return self is ItemType.ERC20


class OrderType(str, enum.Enum):
    """Fill and restriction policy of an order."""

    FULL_OPEN = "full_open"
    PARTIAL_OPEN = "partial_open"
    FULL_RESTRICTED = "full_restricted"
    PARTIAL_RESTRICTED = "partial_restricted"
    CONTRACT = "contract"

    @property
    def is_restricted(self) -> bool:
        return self in (OrderType.FULL_RESTRICTED, OrderType.PARTIAL_RESTRICTED)

    @property
    def supports_partial_fills(self) -> bool:
        return self in (OrderType.PARTIAL_OPEN, OrderType.PARTIAL_RESTRICTED)


class Side(str, enum.Enum):
    """Which item list of an order a criteria resolver addresses."""

    OFFER = "offer"
    CONSIDERATION = "consideration"


class EntryPoint(str, enum.Enum):
    """Protocol operation invoked by the execution driver."""

    FULFILL_BASIC = "fulfill_basic"
    FULFILL_BASIC_EFFICIENT = "fulfill_basic_efficient"
    FULFILL_ORDER = "fulfill_order"
    FULFILL_ADVANCED_ORDER = "fulfill_advanced_order"
    FULFILL_AVAILABLE_ORDERS = "fulfill_available_orders"
    FULFILL_AVAILABLE_ADVANCED_ORDERS = "fulfill_available_advanced_orders"
    MATCH_ORDERS = "match_orders"
    MATCH_ADVANCED_ORDERS = "match_advanced_orders"
    CANCEL = "cancel"
    VALIDATE = "validate"

    @property
    def is_basic(self) -> bool:
        return self in (EntryPoint.FULFILL_BASIC, EntryPoint.FULFILL_BASIC_EFFICIENT)

    @property
    def is_fulfill_available(self) -> bool:
        """Aggregate entry points skip individually failing orders."""
        return self in (
            EntryPoint.FULFILL_AVAILABLE_ORDERS,
            EntryPoint.FULFILL_AVAILABLE_ADVANCED_ORDERS,
        )

    @property
    def is_match(self) -> bool:
        return self in (EntryPoint.MATCH_ORDERS, EntryPoint.MATCH_ADVANCED_ORDERS)

    @property
    def is_advanced(self) -> bool:
        """Entry points that accept fill fractions and criteria resolvers."""
        return self in (
            EntryPoint.FULFILL_ADVANCED_ORDER,
            EntryPoint.FULFILL_AVAILABLE_ADVANCED_ORDERS,
            EntryPoint.MATCH_ADVANCED_ORDERS,
        )

    @property
    def is_status_only(self) -> bool:
        return self in (EntryPoint.CANCEL, EntryPoint.VALIDATE)


class OutcomeStatus(str, enum.Enum):
    """Result of driving the target entry point."""

    SUCCESS = "success"
    REVERT = "revert"
    NOT_EXECUTED = "not_executed"


class FailureReason(str, enum.Enum):
    """Failure a contract offerer or zone can be told to produce."""

    NONE = "none"
    GENERATE_REVERTS = "generate_reverts"
    RATIFY_REVERTS = "ratify_reverts"
    VALIDATE_REVERTS = "validate_reverts"
    INVALID_MAGIC_VALUE = "invalid_magic_value"


# ── Shared Schemas ───────────────────────────────────────────────────────────


class ExecutionOutcome(BaseModel):
    """What the execution driver observed; handed unmodified to the checker."""

    entry_point: EntryPoint
    status: OutcomeStatus = OutcomeStatus.NOT_EXECUTED
    revert_reason: str = ""
    return_data: bytes = b""
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def reverted(self) -> bool:
        return self.status == OutcomeStatus.REVERT


class MutationReport(BaseModel):
    """Record of one select-mutate-execute iteration."""

    failure: str
    granularity: str
    order_index: int | None = None
    resolver_index: int | None = None
    side: str | None = None
    eligible_failures: list[str] = Field(default_factory=list)
    outcome: ExecutionOutcome | None = None
