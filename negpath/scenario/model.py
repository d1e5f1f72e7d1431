"""Scenario data model threaded through every filter and applicator.

A ``FuzzContext`` is built once per iteration by the generator, read by the
eligibility filters, mutated in place by exactly one applicator and then
consumed by the execution driver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from negpath.core.types import EntryPoint, ExecutionOutcome, ItemType, OrderType, Side

if TYPE_CHECKING:
    from negpath.fuzzer.failures import FailureMode
    from negpath.scenario.interfaces import ProtocolEnvironment


ZERO_ADDRESS = "0x" + "00" * 20
ZERO_KEY = b"\x00" * 32
ADDRESS_SPACE = 2**160


def to_address(value: int) -> str:
    """Render an integer as a 20-byte hex address, wrapping at 2**160."""
    return "0x" + format(value % ADDRESS_SPACE, "040x")


def address_to_int(address: str) -> int:
    return int(address, 16)


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


# ── Items ────────────────────────────────────────────────────────────────────


@dataclass
class Item:
    """An offered item as declared in the signed order."""

    item_type: ItemType
    token: str = ZERO_ADDRESS
    identifier_or_criteria: int = 0
    start_amount: int = 1
    end_amount: int = 1


@dataclass
class ConsiderationItem(Item):
    """A requested item; carries the party that must receive it."""

    recipient: str = ZERO_ADDRESS


@dataclass
class SpentItem:
    """An offered item after criteria resolution and amount derivation."""

    item_type: ItemType
    token: str
    identifier: int
    amount: int


@dataclass
class ReceivedItem(SpentItem):
    recipient: str = ZERO_ADDRESS


# ── Orders ───────────────────────────────────────────────────────────────────


@dataclass
class OrderParameters:
    offerer: str
    zone: str = ZERO_ADDRESS
    offer: list[Item] = field(default_factory=list)
    consideration: list[ConsiderationItem] = field(default_factory=list)
    order_type: OrderType = OrderType.FULL_OPEN
    start_time: int = 0
    end_time: int = 2**256 - 1
    zone_hash: bytes = ZERO_KEY
    salt: int = 0
    conduit_key: bytes = ZERO_KEY
    total_original_consideration_items: int | None = None

    def __post_init__(self) -> None:
        if self.total_original_consideration_items is None:
            self.total_original_consideration_items = len(self.consideration)

    def items(self, side: Side) -> list[Any]:
        return self.offer if side == Side.OFFER else self.consideration


@dataclass
class AdvancedOrder:
    parameters: OrderParameters
    numerator: int = 1
    denominator: int = 1
    signature: bytes = b""
    extra_data: bytes = b""

    @property
    def is_contract_order(self) -> bool:
        return self.parameters.order_type == OrderType.CONTRACT


@dataclass
class CriteriaResolver:
    """Resolves one criteria-bearing item slot to a concrete identifier.

    An empty proof selects the wildcard path; a non-empty proof is checked
    against the item's Merkle root.
    """

    order_index: int
    side: Side
    index: int
    identifier: int = 0
    criteria_proof: list[bytes] = field(default_factory=list)


@dataclass
class OrderStatus:
    """Persisted per-order state as reported by the protocol."""

    is_validated: bool = False
    is_cancelled: bool = False
    numerator: int = 0
    denominator: int = 0


@dataclass
class OrderDetails:
    """Derived view of an order once criteria have been resolved."""

    offerer: str
    conduit_key: bytes
    offer: list[SpentItem] = field(default_factory=list)
    consideration: list[ReceivedItem] = field(default_factory=list)
    order_type: OrderType = OrderType.FULL_OPEN
    order_hash: bytes = ZERO_KEY


# ── Executions ───────────────────────────────────────────────────────────────


@dataclass
class Execution:
    """One value transfer the protocol is expected to perform."""

    item: ReceivedItem
    offerer: str
    conduit_key: bytes = ZERO_KEY


@dataclass
class DerivedExecutions:
    explicit: list[Execution] = field(default_factory=list)
    implicit_pre: list[Execution] = field(default_factory=list)
    implicit_post: list[Execution] = field(default_factory=list)
    native_tokens_returned: int = 0


@dataclass
class Expectations:
    """Ground truth computed by the generator for the unmutated scenario."""

    expected_available_orders: list[bool] = field(default_factory=list)
    expected_explicit_executions: list[Execution] = field(default_factory=list)
    expected_implicit_pre_executions: list[Execution] = field(default_factory=list)
    expected_implicit_post_executions: list[Execution] = field(default_factory=list)
    expected_implied_native_executions: int = 0

    def all_executions(self) -> list[Execution]:
        return [
            *self.expected_explicit_executions,
            *self.expected_implicit_pre_executions,
            *self.expected_implicit_post_executions,
        ]


# ── Context ──────────────────────────────────────────────────────────────────


@dataclass
class MutationState:
    """Where the selection step decided to aim the mutation."""

    selected_failure: FailureMode | None = None
    selected_order_index: int | None = None
    selected_criteria_resolver_index: int | None = None
    side: Side | None = None


@dataclass
class FuzzContext:
    orders: list[AdvancedOrder]
    entry_point: EntryPoint
    env: ProtocolEnvironment
    caller: str = ZERO_ADDRESS
    value: int = 0
    recipient: str = ZERO_ADDRESS
    fulfiller_conduit_key: bytes = ZERO_KEY
    block_timestamp: int = 0
    criteria_resolvers: list[CriteriaResolver] = field(default_factory=list)
    order_hashes: list[bytes] = field(default_factory=list)
    order_details: list[OrderDetails] = field(default_factory=list)
    expectations: Expectations = field(default_factory=Expectations)
    fulfillments: list[Any] = field(default_factory=list)
    offer_fulfillments: list[Any] = field(default_factory=list)
    consideration_fulfillments: list[Any] = field(default_factory=list)
    mutation_state: MutationState = field(default_factory=MutationState)
    outcome: ExecutionOutcome | None = None
