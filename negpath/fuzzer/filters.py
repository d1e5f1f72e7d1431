"""Eligibility filters — one per failure mode.

Every filter answers "should this mode be skipped right now?": ``True``
means *ineligible*. Filters come in three shapes, matching the target a
mutation is aimed at:

  context filters             ``(context) -> bool``
  order filters               ``(context, order_index) -> bool``
  criteria-resolver filters   ``(context, resolver_index) -> bool``

The base predicates below each encode one fact about the protocol's
validation order (which checks run first, which entry points never reach a
given check, which ones skip a failing order instead of reverting) and are
composed with ``ineligible_when``. Context predicates are lifted to a
target granularity with ``per_target``; order predicates are applied to a
resolver's owning order with ``on_owning_order``.
"""

from __future__ import annotations

from typing import Callable

from negpath.core.config import get_settings
from negpath.core.types import EntryPoint, ItemType, Side
from negpath.fuzzer.helpers import (
    consideration_items_needing_caller_approval,
    first_non_criteria_slot,
    has_code,
    is_available,
    offer_items_needing_approval,
    order_status,
    probe_contract_signature,
    routes_through_conduit,
    substituted_conduit_key,
)
from negpath.scenario.model import FuzzContext, ZERO_KEY, address_to_int, same_address, to_address


ContextFilter = Callable[[FuzzContext], bool]
TargetFilter = Callable[[FuzzContext, int], bool]


# ── Combinators ──────────────────────────────────────────────────────────────


def ineligible_when(*predicates: Callable[..., bool]) -> Callable[..., bool]:
    """Ineligible as soon as any predicate holds; evaluated left to right."""

    def predicate(context: FuzzContext, *target: int) -> bool:
        return any(p(context, *target) for p in predicates)

    return predicate


def per_target(predicate: ContextFilter) -> TargetFilter:
    def lifted(context: FuzzContext, _index: int) -> bool:
        return predicate(context)

    lifted.__name__ = predicate.__name__
    return lifted


def on_owning_order(predicate: TargetFilter) -> TargetFilter:
    def lifted(context: FuzzContext, resolver_index: int) -> bool:
        return predicate(context, context.criteria_resolvers[resolver_index].order_index)

    lifted.__name__ = predicate.__name__
    return lifted


# ── Entry-point predicates ───────────────────────────────────────────────────


def when_basic(context: FuzzContext) -> bool:
    return context.entry_point.is_basic


def when_not_basic(context: FuzzContext) -> bool:
    return not context.entry_point.is_basic


def when_fulfill_available(context: FuzzContext) -> bool:
    return context.entry_point.is_fulfill_available


def when_not_fulfill_available(context: FuzzContext) -> bool:
    return not context.entry_point.is_fulfill_available


def when_fulfill_available_advanced(context: FuzzContext) -> bool:
    return context.entry_point == EntryPoint.FULFILL_AVAILABLE_ADVANCED_ORDERS


def when_match(context: FuzzContext) -> bool:
    return context.entry_point.is_match


def when_not_advanced(context: FuzzContext) -> bool:
    return not context.entry_point.is_advanced


def when_status_only(context: FuzzContext) -> bool:
    return context.entry_point.is_status_only


def when_cancel(context: FuzzContext) -> bool:
    return context.entry_point == EntryPoint.CANCEL


def when_not_cancel(context: FuzzContext) -> bool:
    return context.entry_point != EntryPoint.CANCEL


# ── Order predicates ─────────────────────────────────────────────────────────


def when_unavailable(context: FuzzContext, order_index: int) -> bool:
    return not is_available(context, order_index)


def when_contract_order(context: FuzzContext, order_index: int) -> bool:
    return context.orders[order_index].is_contract_order


def when_not_contract_order(context: FuzzContext, order_index: int) -> bool:
    return not context.orders[order_index].is_contract_order


def when_any_contract_order(context: FuzzContext) -> bool:
    return any(order.is_contract_order for order in context.orders)


def when_not_restricted(context: FuzzContext, order_index: int) -> bool:
    return not context.orders[order_index].parameters.order_type.is_restricted


def when_supports_partial_fills_or_contract(context: FuzzContext, order_index: int) -> bool:
    order = context.orders[order_index]
    return order.is_contract_order or order.parameters.order_type.supports_partial_fills


def when_neither_validate_nor_contract_order(context: FuzzContext, order_index: int) -> bool:
    return context.entry_point != EntryPoint.VALIDATE and not context.orders[order_index].is_contract_order


def when_no_consideration(context: FuzzContext, order_index: int) -> bool:
    return not context.orders[order_index].parameters.consideration


def when_conduit_key_zero(context: FuzzContext, order_index: int) -> bool:
    return context.orders[order_index].parameters.conduit_key == ZERO_KEY


# ── Signature predicates ─────────────────────────────────────────────────────


def when_offerer_is_caller(context: FuzzContext, order_index: int) -> bool:
    return same_address(context.orders[order_index].parameters.offerer, context.caller)


def when_validated(context: FuzzContext, order_index: int) -> bool:
    return order_status(context, order_index).is_validated


def when_offerer_has_code(context: FuzzContext, order_index: int) -> bool:
    return has_code(context, context.orders[order_index].parameters.offerer)


def when_offerer_has_no_code(context: FuzzContext, order_index: int) -> bool:
    return not has_code(context, context.orders[order_index].parameters.offerer)


def when_signature_empty(context: FuzzContext, order_index: int) -> bool:
    return not context.orders[order_index].signature


def when_signature_not_standard_length(context: FuzzContext, order_index: int) -> bool:
    return len(context.orders[order_index].signature) not in (64, 65)


def when_signature_has_no_v(context: FuzzContext, order_index: int) -> bool:
    return len(context.orders[order_index].signature) != 65


def when_signature_probe_fails(context: FuzzContext, order_index: int) -> bool:
    return not probe_contract_signature(context, order_index).ok


# ── Zone predicates ──────────────────────────────────────────────────────────


def when_caller_is_zone(context: FuzzContext, order_index: int) -> bool:
    return same_address(context.orders[order_index].parameters.zone, context.caller)


def when_zone_has_no_code(context: FuzzContext, order_index: int) -> bool:
    return not has_code(context, context.orders[order_index].parameters.zone)


def when_zone_is_shifted_caller(context: FuzzContext, order_index: int) -> bool:
    parameters = context.orders[order_index].parameters
    return same_address(parameters.zone, to_address(address_to_int(parameters.offerer) - 1))


# ── Value predicates ─────────────────────────────────────────────────────────


def when_no_minimum_value(context: FuzzContext) -> bool:
    return context.env.deriver.get_minimum_required_native_value(context) == 0


def when_implied_native_executions(context: FuzzContext) -> bool:
    return context.expectations.expected_implied_native_executions != 0


def when_no_implied_native_executions(context: FuzzContext) -> bool:
    return context.expectations.expected_implied_native_executions == 0


def when_basic_consideration_native(context: FuzzContext) -> bool:
    consideration = context.orders[0].parameters.consideration
    return bool(consideration) and consideration[0].item_type == ItemType.NATIVE


# ── Item predicates ──────────────────────────────────────────────────────────


def when_no_offer_item_needs_approval(context: FuzzContext, order_index: int) -> bool:
    return not offer_items_needing_approval(context, order_index)


def when_no_consideration_item_needs_caller_approval(context: FuzzContext, order_index: int) -> bool:
    return not consideration_items_needing_caller_approval(context, order_index)


def when_no_non_criteria_item(context: FuzzContext, order_index: int) -> bool:
    return first_non_criteria_slot(context.orders[order_index]) is None


def when_invalid_conduit_never_exercised(context: FuzzContext, order_index: int) -> bool:
    """Re-derive executions with an unregistered conduit key in place.

    An item the derivation filters out never reaches the conduit, so the
    substitution only provokes the failure if at least one non-native
    transfer would now be routed through the invalid key.
    """
    invalid_key = get_settings().invalid_conduit_key_bytes
    with substituted_conduit_key(context, order_index, invalid_key):
        derived = context.env.deriver.derive_executions(context, context.value)
    return not routes_through_conduit([*derived.explicit, *derived.implicit_post], invalid_key)


# ── Criteria-resolver predicates ─────────────────────────────────────────────


def when_proof_empty(context: FuzzContext, resolver_index: int) -> bool:
    return not context.criteria_resolvers[resolver_index].criteria_proof


def when_proof_not_empty(context: FuzzContext, resolver_index: int) -> bool:
    return bool(context.criteria_resolvers[resolver_index].criteria_proof)


def when_resolver_not_offer_side(context: FuzzContext, resolver_index: int) -> bool:
    return context.criteria_resolvers[resolver_index].side != Side.OFFER


def when_resolver_not_consideration_side(context: FuzzContext, resolver_index: int) -> bool:
    return context.criteria_resolvers[resolver_index].side != Side.CONSIDERATION


# ── Filters ──────────────────────────────────────────────────────────────────

# Signatures are checked after timing, status and fraction checks and are
# skipped for contract orders, for orders the caller offers and for orders
# already validated on chain.
ineligible_for_any_signature_failure = ineligible_when(
    when_unavailable,
    per_target(when_cancel),
    when_contract_order,
    when_offerer_is_caller,
    when_validated,
)

ineligible_for_eoa_signature = ineligible_when(
    ineligible_for_any_signature_failure,
    when_offerer_has_code,
)

ineligible_for_invalid_signature = ineligible_when(
    ineligible_for_eoa_signature,
    when_signature_empty,
)

ineligible_for_invalid_signer = ineligible_when(
    ineligible_for_eoa_signature,
    when_signature_not_standard_length,
)

ineligible_for_bad_signature_v = ineligible_when(
    ineligible_for_eoa_signature,
    when_signature_has_no_v,
)

# The probe runs last; it is the only predicate that calls the offerer.
ineligible_for_contract_signature = ineligible_when(
    ineligible_for_any_signature_failure,
    when_offerer_has_no_code,
    when_signature_probe_fails,
)

ineligible_for_bad_contract_signature_bad_signature = ineligible_when(
    ineligible_for_any_signature_failure,
    when_offerer_has_no_code,
    when_signature_empty,
    when_signature_probe_fails,
)

ineligible_for_consideration_length_not_equal_to_total_original = ineligible_when(
    when_unavailable,
    per_target(when_cancel),
    per_target(when_basic),
    when_neither_validate_nor_contract_order,
    when_no_consideration,
)

ineligible_for_missing_original_consideration_items = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    per_target(when_basic),
    when_contract_order,
)

ineligible_for_bad_fraction_partial_contract_order = ineligible_when(
    when_unavailable,
    per_target(when_not_advanced),
    when_not_contract_order,
)

# fulfillAvailableAdvancedOrders treats a zero-fill order as skippable.
ineligible_for_bad_fraction_no_fill = ineligible_when(
    when_unavailable,
    per_target(when_not_advanced),
    per_target(when_fulfill_available_advanced),
)

ineligible_for_bad_fraction_overfill = ineligible_when(
    when_unavailable,
    per_target(when_not_advanced),
)

ineligible_for_partial_fills_not_enabled_for_order = ineligible_when(
    when_unavailable,
    per_target(when_not_advanced),
    when_supports_partial_fills_or_contract,
)

ineligible_for_cannot_cancel_order = ineligible_when(
    per_target(when_not_cancel),
    when_contract_order,
    when_zone_is_shifted_caller,
)

ineligible_for_order_is_cancelled = ineligible_when(
    when_unavailable,
    per_target(when_fulfill_available),
    per_target(when_cancel),
    when_contract_order,
)

ineligible_for_order_already_filled = ineligible_when(
    when_unavailable,
    per_target(when_fulfill_available),
    per_target(when_status_only),
    when_contract_order,
)

ineligible_for_order_partially_filled = ineligible_when(
    when_unavailable,
    per_target(when_not_basic),
)

ineligible_for_no_specified_orders_available = ineligible_when(
    when_not_fulfill_available,
    when_any_contract_order,
)

ineligible_for_invalid_time = ineligible_when(
    when_unavailable,
    per_target(when_fulfill_available),
    per_target(when_status_only),
)

ineligible_for_invalid_conduit = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    when_conduit_key_zero,
    when_invalid_conduit_never_exercised,
)

# Insufficient-funds and generic-failure partition on whether the scenario
# already implies native transfers.
ineligible_for_insufficient_native_tokens = ineligible_when(
    when_match,
    when_status_only,
    when_no_minimum_value,
    when_implied_native_executions,
)

ineligible_for_native_token_transfer_generic_failure = ineligible_when(
    when_match,
    when_status_only,
    when_no_minimum_value,
    when_no_implied_native_executions,
)

ineligible_for_invalid_msg_value = ineligible_when(
    when_not_basic,
    when_basic_consideration_native,
)

ineligible_for_offer_item_missing_approval = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    when_contract_order,
    when_no_offer_item_needs_approval,
)

# The caller supplies nothing under match.
ineligible_for_caller_missing_approval = ineligible_when(
    per_target(when_match),
    per_target(when_status_only),
    when_unavailable,
    when_no_consideration_item_needs_caller_approval,
)

ineligible_for_criteria_not_enabled_for_item = ineligible_when(
    per_target(when_not_advanced),
    when_unavailable,
    when_contract_order,
    when_no_non_criteria_item,
)

ineligible_for_order_criteria_resolver_out_of_range = ineligible_when(when_not_advanced)

ineligible_for_item_criteria_resolver_out_of_range = ineligible_when(
    per_target(when_not_advanced),
    when_unavailable,
    when_contract_order,
)

# Non-advanced entry points never process criteria resolvers.
ineligible_for_criteria_resolver_failure = ineligible_when(
    per_target(when_not_advanced),
    on_owning_order(when_unavailable),
    on_owning_order(when_contract_order),
)

ineligible_for_invalid_proof_merkle = ineligible_when(
    ineligible_for_criteria_resolver_failure,
    when_proof_empty,
)

ineligible_for_invalid_proof_wildcard = ineligible_when(
    ineligible_for_criteria_resolver_failure,
    when_proof_not_empty,
)

ineligible_for_unresolved_offer_criteria = ineligible_when(
    ineligible_for_criteria_resolver_failure,
    when_resolver_not_offer_side,
)

ineligible_for_unresolved_consideration_criteria = ineligible_when(
    ineligible_for_criteria_resolver_failure,
    when_resolver_not_consideration_side,
)

ineligible_for_invalid_restricted_order = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    when_not_restricted,
    when_caller_is_zone,
    when_zone_has_no_code,
)

# Aggregate entry points skip a contract order whose generation fails.
ineligible_for_invalid_contract_order_generate = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    per_target(when_fulfill_available),
    when_not_contract_order,
)

ineligible_for_invalid_contract_order_ratify = ineligible_when(
    when_unavailable,
    per_target(when_status_only),
    when_not_contract_order,
)
