"""Collaborator interfaces the engine consumes but does not implement.

Derivation, persisted protocol state, token contracts, offerer and zone
hooks, signing and the execution driver all live outside this package.
They are bundled in a ``ProtocolEnvironment`` carried by the context.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from negpath.core.types import ExecutionOutcome, FailureReason
from negpath.scenario.model import DerivedExecutions, OrderStatus

if TYPE_CHECKING:
    from negpath.scenario.model import FuzzContext


@runtime_checkable
class ExecutionDeriver(Protocol):
    """Computes the value transfers a scenario should produce."""

    def get_minimum_required_native_value(self, context: FuzzContext) -> int: ...

    def derive_executions(self, context: FuzzContext, value: int) -> DerivedExecutions: ...

    def derive_fulfillments(self, context: FuzzContext) -> None: ...


@runtime_checkable
class ProtocolState(Protocol):
    def get_order_status(self, order_hash: bytes) -> OrderStatus: ...

    def has_code(self, address: str) -> bool: ...


@runtime_checkable
class StateInscriber(Protocol):
    """Privileged writes that bypass normal state transitions."""

    def inscribe_order_status_cancelled(self, order_hash: bytes, is_cancelled: bool) -> None: ...

    def inscribe_order_status_validated(self, order_hash: bytes, is_validated: bool) -> None: ...

    def inscribe_order_status_numerator_and_denominator(
        self, order_hash: bytes, numerator: int, denominator: int
    ) -> None: ...


@runtime_checkable
class TokenApprovals(Protocol):
    """Approval primitives; ``owner`` is the identity being impersonated."""

    def approve(self, owner: str, token: str, spender: str, amount: int) -> None: ...

    def set_approval_for_all(self, owner: str, token: str, operator: str, approved: bool) -> None: ...


@runtime_checkable
class ConduitRegistry(Protocol):
    def get_conduit(self, conduit_key: bytes) -> str | None: ...


@runtime_checkable
class OffererHooks(Protocol):
    """Test-controllable behaviour of code-bearing offerers."""

    def is_valid_signature(self, offerer: str, digest: bytes, signature: bytes) -> bytes: ...

    def return_empty(self, offerer: str) -> None: ...

    def set_failure_reason(self, offerer: str, order_hash: bytes, reason: FailureReason) -> None: ...


@runtime_checkable
class ZoneHooks(Protocol):
    def set_failure_reason(self, zone: str, order_hash: bytes, reason: FailureReason) -> None: ...


@runtime_checkable
class OrderSigner(Protocol):
    def digest(self, context: FuzzContext, order_index: int) -> bytes: ...

    def sign_order(self, context: FuzzContext, order_index: int) -> bytes: ...


@runtime_checkable
class ExecutionDriver(Protocol):
    def exec(self, context: FuzzContext) -> ExecutionOutcome: ...


@dataclass
class ProtocolEnvironment:
    """Everything a filter or applicator may touch outside the context."""

    protocol_address: str
    deriver: ExecutionDeriver
    state: ProtocolState
    inscriber: StateInscriber
    tokens: TokenApprovals
    conduits: ConduitRegistry
    offerers: OffererHooks
    zones: ZoneHooks
    signer: OrderSigner
    driver: ExecutionDriver
