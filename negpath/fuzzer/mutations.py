"""Mutation applicators — one per failure mode.

Each applicator takes the context and the selection state, performs a
single named perturbation and hands the context to the execution driver.
Applicators never judge the outcome; the checker does that afterwards.
"""

from __future__ import annotations

import logging

from negpath.core.config import get_settings
from negpath.core.errors import StructuralViolationError
from negpath.core.types import ExecutionOutcome, FailureReason, Side
from negpath.fuzzer.helpers import (
    consideration_items_needing_caller_approval,
    first_non_criteria_slot,
    flip_low_bit,
    get_approval_target,
    offer_items_needing_approval,
    revoke_approval,
    set_conduit_key,
)
from negpath.scenario.model import (
    AdvancedOrder,
    CriteriaResolver,
    FuzzContext,
    MutationState,
    ZERO_KEY,
    address_to_int,
    to_address,
)

logger = logging.getLogger(__name__)


# ── Execution ────────────────────────────────────────────────────────────────


def exec_(context: FuzzContext) -> ExecutionOutcome:
    """Run the target entry point and record the outcome on the context."""
    outcome = context.env.driver.exec(context)
    context.outcome = outcome
    state = context.mutation_state
    logger.info(
        "Executed %s: %s %s",
        context.entry_point.value,
        outcome.status.value,
        outcome.revert_reason,
        extra={
            "entry_point": context.entry_point.value,
            "status": outcome.status.value,
            "failure": state.selected_failure.value if state.selected_failure else None,
            "order_index": state.selected_order_index,
            "resolver_index": state.selected_criteria_resolver_index,
        },
    )
    return outcome


# ── Target resolution ────────────────────────────────────────────────────────


def _order_index(context: FuzzContext, mutation_state: MutationState) -> int:
    index = mutation_state.selected_order_index
    if index is None or not 0 <= index < len(context.orders):
        raise StructuralViolationError(
            "Selection state does not name a valid order",
            {"order_index": index, "orders": len(context.orders)},
        )
    return index


def _selected_order(context: FuzzContext, mutation_state: MutationState) -> AdvancedOrder:
    return context.orders[_order_index(context, mutation_state)]


def _resolver_index(context: FuzzContext, mutation_state: MutationState) -> int:
    index = mutation_state.selected_criteria_resolver_index
    if index is None or not 0 <= index < len(context.criteria_resolvers):
        raise StructuralViolationError(
            "Selection state does not name a valid criteria resolver",
            {"resolver_index": index, "resolvers": len(context.criteria_resolvers)},
        )
    return index


# ── Signatures ───────────────────────────────────────────────────────────────


def mutation_invalid_signature(context: FuzzContext, mutation_state: MutationState) -> None:
    """Truncate the signature so its length matches no accepted encoding."""
    _selected_order(context, mutation_state).signature = b""
    exec_(context)


def mutation_invalid_signer_bad_signature(context: FuzzContext, mutation_state: MutationState) -> None:
    """Flip the low bit of the first signature byte; recovery yields another signer."""
    order = _selected_order(context, mutation_state)
    order.signature = flip_low_bit(order.signature, 0)
    exec_(context)


def mutation_invalid_signer_modified_order(context: FuzzContext, mutation_state: MutationState) -> None:
    """Leave the signature intact but change what it is checked against."""
    _selected_order(context, mutation_state).parameters.salt ^= 1
    exec_(context)


def mutation_bad_signature_v(context: FuzzContext, mutation_state: MutationState) -> None:
    order = _selected_order(context, mutation_state)
    signature = bytearray(order.signature)
    # 27/28 become 228/227
    signature[-1] ^= 0xFF
    order.signature = bytes(signature)
    exec_(context)


def mutation_bad_contract_signature_bad_signature(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    order = _selected_order(context, mutation_state)
    order.signature = flip_low_bit(order.signature, 0)
    exec_(context)


def mutation_bad_contract_signature_modified_order(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _selected_order(context, mutation_state).parameters.salt ^= 1
    exec_(context)


def mutation_bad_contract_signature_missing_magic(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    """Make the offerer answer its next signature check with empty data."""
    order = _selected_order(context, mutation_state)
    context.env.offerers.return_empty(order.parameters.offerer)
    exec_(context)


# ── Order structure ──────────────────────────────────────────────────────────


def mutation_consideration_length_not_equal_to_total_original(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    parameters = _selected_order(context, mutation_state).parameters
    parameters.total_original_consideration_items = len(parameters.consideration) - 1
    exec_(context)


def mutation_missing_original_consideration_items(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    parameters = _selected_order(context, mutation_state).parameters
    parameters.total_original_consideration_items = len(parameters.consideration) + 1
    exec_(context)


# ── Fractions ────────────────────────────────────────────────────────────────


def _set_fraction(order: AdvancedOrder, numerator: int, denominator: int) -> None:
    order.numerator = numerator
    order.denominator = denominator


def mutation_bad_fraction_partial_contract_order(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    """Reducible, but not to 1/1; contract orders only accept full fills."""
    _set_fraction(_selected_order(context, mutation_state), 6, 9)
    exec_(context)


def mutation_bad_fraction_no_fill(context: FuzzContext, mutation_state: MutationState) -> None:
    _selected_order(context, mutation_state).numerator = 0
    exec_(context)


def mutation_bad_fraction_overfill(context: FuzzContext, mutation_state: MutationState) -> None:
    _set_fraction(_selected_order(context, mutation_state), 2, 1)
    exec_(context)


def mutation_partial_fills_not_enabled_for_order(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _set_fraction(_selected_order(context, mutation_state), 1, 2)
    exec_(context)


# ── Status ───────────────────────────────────────────────────────────────────


def mutation_cannot_cancel_order(context: FuzzContext, mutation_state: MutationState) -> None:
    """Cancel from an address one below the offerer's, which cannot equal it."""
    offerer = _selected_order(context, mutation_state).parameters.offerer
    context.caller = to_address(address_to_int(offerer) - 1)
    exec_(context)


def mutation_order_is_cancelled(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    context.env.inscriber.inscribe_order_status_cancelled(context.order_hashes[index], True)
    exec_(context)


def mutation_order_already_filled(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    context.env.inscriber.inscribe_order_status_numerator_and_denominator(
        context.order_hashes[index], 1, 1
    )
    exec_(context)


def mutation_order_partially_filled(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    context.env.inscriber.inscribe_order_status_numerator_and_denominator(
        context.order_hashes[index], 1, 2
    )
    exec_(context)


def mutation_no_specified_orders_available(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    for order_hash in context.order_hashes:
        context.env.inscriber.inscribe_order_status_cancelled(order_hash, True)
    exec_(context)


# ── Timing ───────────────────────────────────────────────────────────────────


def mutation_invalid_time_not_started(context: FuzzContext, mutation_state: MutationState) -> None:
    parameters = _selected_order(context, mutation_state).parameters
    parameters.start_time = context.block_timestamp + 1
    parameters.end_time = context.block_timestamp + 2
    exec_(context)


def mutation_invalid_time_expired(context: FuzzContext, mutation_state: MutationState) -> None:
    parameters = _selected_order(context, mutation_state).parameters
    parameters.start_time = max(context.block_timestamp - 1, 0)
    parameters.end_time = context.block_timestamp
    exec_(context)


# ── Routing ──────────────────────────────────────────────────────────────────


def mutation_invalid_conduit(context: FuzzContext, mutation_state: MutationState) -> None:
    """Route the order through an unregistered conduit key.

    The key is part of the signed payload, so non-contract orders are
    re-signed, and fulfillments that aggregate by conduit are re-derived.
    """
    index = _order_index(context, mutation_state)
    order = context.orders[index]
    set_conduit_key(context, index, get_settings().invalid_conduit_key_bytes)
    if not order.is_contract_order:
        order.signature = context.env.signer.sign_order(context, index)
    context.env.deriver.derive_fulfillments(context)
    exec_(context)


# ── Native value ─────────────────────────────────────────────────────────────


def _underfund(context: FuzzContext) -> None:
    minimum = context.env.deriver.get_minimum_required_native_value(context)
    context.value = minimum - 1


def mutation_insufficient_native_tokens_supplied(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _underfund(context)
    exec_(context)


def mutation_native_token_transfer_generic_failure(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _underfund(context)
    exec_(context)


def mutation_invalid_msg_value(context: FuzzContext, mutation_state: MutationState) -> None:
    context.value = 1
    exec_(context)


# ── Approvals ────────────────────────────────────────────────────────────────


def mutation_offer_item_missing_approval(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    items = offer_items_needing_approval(context, index)
    if not items:
        raise StructuralViolationError("Order has no offer item that needs approval", {"order_index": index})

    details = context.order_details[index]
    spender = get_approval_target(context, details.conduit_key)
    revoke_approval(context, items[0], owner=details.offerer, spender=spender)
    exec_(context)


def mutation_caller_missing_approval(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    items = consideration_items_needing_caller_approval(context, index)
    if not items:
        raise StructuralViolationError(
            "Order has no consideration item the caller must approve", {"order_index": index}
        )

    spender = get_approval_target(context, context.fulfiller_conduit_key)
    revoke_approval(context, items[0], owner=context.caller, spender=spender)
    exec_(context)


# ── Criteria resolution ──────────────────────────────────────────────────────


def mutation_criteria_not_enabled_for_item(context: FuzzContext, mutation_state: MutationState) -> None:
    index = _order_index(context, mutation_state)
    slot = first_non_criteria_slot(context.orders[index])
    if slot is None:
        raise StructuralViolationError("Order has no item declared without criteria", {"order_index": index})

    side, item_index = slot
    context.criteria_resolvers.append(
        CriteriaResolver(order_index=index, side=side, index=item_index)
    )
    exec_(context)


def mutation_invalid_proof_merkle(context: FuzzContext, mutation_state: MutationState) -> None:
    resolver = context.criteria_resolvers[_resolver_index(context, mutation_state)]
    proof = list(resolver.criteria_proof)
    proof[0] = flip_low_bit(proof[0], len(proof[0]) - 1)
    resolver.criteria_proof = proof
    exec_(context)


def mutation_invalid_proof_wildcard(context: FuzzContext, mutation_state: MutationState) -> None:
    resolver = context.criteria_resolvers[_resolver_index(context, mutation_state)]
    resolver.criteria_proof = [ZERO_KEY]
    exec_(context)


def mutation_order_criteria_resolver_out_of_range(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    context.criteria_resolvers.append(
        CriteriaResolver(order_index=len(context.orders), side=Side.OFFER, index=0)
    )
    exec_(context)


def mutation_offer_criteria_resolver_out_of_range(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    index = _order_index(context, mutation_state)
    offer = context.orders[index].parameters.offer
    context.criteria_resolvers.append(
        CriteriaResolver(order_index=index, side=Side.OFFER, index=len(offer))
    )
    exec_(context)


def mutation_consideration_criteria_resolver_out_of_range(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    index = _order_index(context, mutation_state)
    consideration = context.orders[index].parameters.consideration
    context.criteria_resolvers.append(
        CriteriaResolver(order_index=index, side=Side.CONSIDERATION, index=len(consideration))
    )
    exec_(context)


def mutation_unresolved_criteria(context: FuzzContext, mutation_state: MutationState) -> None:
    """Drop one resolver, leaving its criteria item unresolved."""
    del context.criteria_resolvers[_resolver_index(context, mutation_state)]
    exec_(context)


# ── Zones and contract offerers ──────────────────────────────────────────────


def _fail_zone(context: FuzzContext, mutation_state: MutationState, reason: FailureReason) -> None:
    index = _order_index(context, mutation_state)
    zone = context.orders[index].parameters.zone
    context.env.zones.set_failure_reason(zone, context.order_hashes[index], reason)
    exec_(context)


def mutation_invalid_restricted_order_reverts(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _fail_zone(context, mutation_state, FailureReason.VALIDATE_REVERTS)


def mutation_invalid_restricted_order_invalid_magic_value(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _fail_zone(context, mutation_state, FailureReason.INVALID_MAGIC_VALUE)


def _fail_offerer(context: FuzzContext, mutation_state: MutationState, reason: FailureReason) -> None:
    index = _order_index(context, mutation_state)
    offerer = context.orders[index].parameters.offerer
    context.env.offerers.set_failure_reason(offerer, context.order_hashes[index], reason)
    exec_(context)


def mutation_invalid_contract_order_generate_reverts(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _fail_offerer(context, mutation_state, FailureReason.GENERATE_REVERTS)


def mutation_invalid_contract_order_ratify_reverts(
    context: FuzzContext, mutation_state: MutationState
) -> None:
    _fail_offerer(context, mutation_state, FailureReason.RATIFY_REVERTS)
