"""Shared predicates and primitives used by the filter and applicator sets.

Availability, approval-target lookup, item exemption, the contract
signature probe and the scoped conduit substitution all live here so the
filters can be composed from a single implementation of each.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from negpath.core.types import ItemType, Side
from negpath.scenario.model import (
    AdvancedOrder,
    Execution,
    FuzzContext,
    OrderStatus,
    ReceivedItem,
    SpentItem,
    ZERO_KEY,
    same_address,
)

logger = logging.getLogger(__name__)

# bytes4(keccak256("isValidSignature(bytes32,bytes)"))
EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")


# ── Availability & status ────────────────────────────────────────────────────


def is_available(context: FuzzContext, order_index: int) -> bool:
    """Whether the generator expects this order to be reached at all."""
    available = context.expectations.expected_available_orders
    return 0 <= order_index < len(available) and available[order_index]


def order_status(context: FuzzContext, order_index: int) -> OrderStatus:
    return context.env.state.get_order_status(context.order_hashes[order_index])


def has_code(context: FuzzContext, address: str) -> bool:
    return context.env.state.has_code(address)


# ── Approvals ────────────────────────────────────────────────────────────────


def get_approval_target(context: FuzzContext, conduit_key: bytes) -> str:
    """Address that must hold approval to move items under ``conduit_key``."""
    if conduit_key == ZERO_KEY:
        return context.env.protocol_address
    conduit = context.env.conduits.get_conduit(conduit_key)
    return conduit if conduit else context.env.protocol_address


def _matches(execution: Execution, item: SpentItem, offerer: str, conduit_key: bytes) -> bool:
    return (
        execution.item.item_type == item.item_type
        and same_address(execution.item.token, item.token)
        and execution.item.identifier == item.identifier
        and execution.item.amount > 0
        and same_address(execution.offerer, offerer)
        and execution.conduit_key == conduit_key
    )


def is_filtered_or_native(
    context: FuzzContext,
    item: SpentItem,
    offerer: str,
    conduit_key: bytes,
) -> bool:
    """True when moving ``item`` out of ``offerer`` needs no approval check.

    Native items never need one. Other items only need one when some
    expected execution actually moves them from ``offerer`` through
    ``conduit_key``; executions the derivation filtered out never reach
    the token contract.
    """
    if item.item_type == ItemType.NATIVE:
        return True
    return not any(
        _matches(execution, item, offerer, conduit_key)
        for execution in context.expectations.all_executions()
    )


def offer_items_needing_approval(context: FuzzContext, order_index: int) -> list[SpentItem]:
    details = context.order_details[order_index]
    return [
        item
        for item in details.offer
        if not is_filtered_or_native(context, item, details.offerer, details.conduit_key)
    ]


def consideration_items_needing_caller_approval(
    context: FuzzContext, order_index: int
) -> list[ReceivedItem]:
    details = context.order_details[order_index]
    items = details.consideration
    # Basic orders offering a fungible token pay every consideration item but the
    # first out of the offerer's tokens, so only the first one is the caller's.
    if context.entry_point.is_basic and details.offer and details.offer[0].item_type.is_fungible:
        items = items[:1]
    return [
        item
        for item in items
        if not is_filtered_or_native(context, item, context.caller, context.fulfiller_conduit_key)
    ]


def revoke_approval(context: FuzzContext, item: SpentItem, owner: str, spender: str) -> None:
    """Withdraw ``spender``'s right to move ``item`` out of ``owner``."""
    tokens = context.env.tokens
    if item.item_type == ItemType.ERC20:
        tokens.approve(owner, item.token, spender, 0)
    else:
        tokens.set_approval_for_all(owner, item.token, spender, False)


# ── Signature probe ──────────────────────────────────────────────────────────


@dataclass
class ProbeResult:
    """Outcome of asking a code-bearing offerer to validate its signature."""

    ok: bool
    magic: bytes = b""
    error: str = ""


def probe_contract_signature(context: FuzzContext, order_index: int) -> ProbeResult:
    """Check the offerer currently accepts the order's signature.

    Any error raised by the offerer (or by the digest computation) is
    reported as a failed probe instead of propagating.
    """
    order = context.orders[order_index]
    offerer = order.parameters.offerer
    try:
        digest = context.env.signer.digest(context, order_index)
        magic = context.env.offerers.is_valid_signature(offerer, digest, order.signature)
    except Exception as e:
        logger.debug("Signature probe against %s failed: %s", offerer, e)
        return ProbeResult(ok=False, error=str(e))

    if magic != EIP1271_MAGIC_VALUE:
        logger.debug("Offerer %s returned %r instead of the magic value", offerer, magic)
        return ProbeResult(ok=False, magic=magic)
    return ProbeResult(ok=True, magic=magic)


# ── Conduit substitution ─────────────────────────────────────────────────────


def set_conduit_key(context: FuzzContext, order_index: int, conduit_key: bytes) -> None:
    """Route an order through ``conduit_key`` in both the signed parameters
    and the derived details that execution derivation reads."""
    context.orders[order_index].parameters.conduit_key = conduit_key
    context.order_details[order_index].conduit_key = conduit_key


@contextmanager
def substituted_conduit_key(
    context: FuzzContext, order_index: int, conduit_key: bytes
) -> Iterator[AdvancedOrder]:
    """Temporarily route the order at ``order_index`` through ``conduit_key``.

    Both original keys are restored on every exit path, including errors
    raised inside the block.
    """
    order = context.orders[order_index]
    details = context.order_details[order_index]
    original_parameters_key = order.parameters.conduit_key
    original_details_key = details.conduit_key
    set_conduit_key(context, order_index, conduit_key)
    try:
        yield order
    finally:
        order.parameters.conduit_key = original_parameters_key
        details.conduit_key = original_details_key


def routes_through_conduit(executions: list[Execution], conduit_key: bytes) -> bool:
    """Whether any non-native transfer is routed through ``conduit_key``."""
    return any(
        execution.conduit_key == conduit_key and execution.item.item_type != ItemType.NATIVE
        for execution in executions
    )


# ── Item & byte primitives ───────────────────────────────────────────────────


def first_non_criteria_slot(order: AdvancedOrder) -> tuple[Side, int] | None:
    """First (side, index) whose item was declared without criteria."""
    for side in (Side.OFFER, Side.CONSIDERATION):
        for index, item in enumerate(order.parameters.items(side)):
            if not item.item_type.has_criteria:
                return side, index
    return None


def flip_low_bit(data: bytes, index: int = 0) -> bytes:
    buf = bytearray(data)
    buf[index] ^= 0x01
    return bytes(buf)
