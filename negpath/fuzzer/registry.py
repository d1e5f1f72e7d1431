"""Failure-mode registry — pairs every filter with its applicator.

The selection step looks modes up by ``FailureMode``; the catalog is
checked against the enum at import time so a mode can never be added
without both halves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from negpath.core.config import get_settings
from negpath.core.errors import CatalogError
from negpath.fuzzer import filters as f
from negpath.fuzzer import mutations as m
from negpath.fuzzer.failures import FailureMode, Granularity
from negpath.scenario.model import FuzzContext, MutationState

logger = logging.getLogger(__name__)

Applicator = Callable[[FuzzContext, MutationState], None]


@dataclass(frozen=True)
class MutationSpec:
    """A failure mode's filter/applicator pair and the target it takes."""

    failure: FailureMode
    granularity: Granularity
    ineligible: Callable[..., bool]
    apply: Applicator
    description: str = ""


_C, _O, _R = Granularity.CONTEXT, Granularity.ORDER, Granularity.CRITERIA_RESOLVER

_SPECS: list[MutationSpec] = [
    # Signatures
    MutationSpec(FailureMode.INVALID_SIGNATURE, _O,
                 f.ineligible_for_invalid_signature, m.mutation_invalid_signature,
                 "EOA signature truncated to an unaccepted length"),
    MutationSpec(FailureMode.INVALID_SIGNER_BAD_SIGNATURE, _O,
                 f.ineligible_for_invalid_signer, m.mutation_invalid_signer_bad_signature,
                 "EOA signature bytes tampered with"),
    MutationSpec(FailureMode.INVALID_SIGNER_MODIFIED_ORDER, _O,
                 f.ineligible_for_invalid_signer, m.mutation_invalid_signer_modified_order,
                 "Order of a code-less offerer modified after signing"),
    MutationSpec(FailureMode.BAD_SIGNATURE_V, _O,
                 f.ineligible_for_bad_signature_v, m.mutation_bad_signature_v,
                 "EOA signature carries an invalid recovery id"),
    MutationSpec(FailureMode.BAD_CONTRACT_SIGNATURE_BAD_SIGNATURE, _O,
                 f.ineligible_for_bad_contract_signature_bad_signature,
                 m.mutation_bad_contract_signature_bad_signature,
                 "Signature checked by a code-bearing offerer tampered with"),
    MutationSpec(FailureMode.BAD_CONTRACT_SIGNATURE_MODIFIED_ORDER, _O,
                 f.ineligible_for_contract_signature, m.mutation_bad_contract_signature_modified_order,
                 "Order of a code-bearing offerer modified after signing"),
    MutationSpec(FailureMode.BAD_CONTRACT_SIGNATURE_MISSING_MAGIC, _O,
                 f.ineligible_for_contract_signature, m.mutation_bad_contract_signature_missing_magic,
                 "Code-bearing offerer returns no magic value"),
    # Order structure
    MutationSpec(FailureMode.CONSIDERATION_LENGTH_NOT_EQUAL_TO_TOTAL_ORIGINAL, _O,
                 f.ineligible_for_consideration_length_not_equal_to_total_original,
                 m.mutation_consideration_length_not_equal_to_total_original,
                 "Extra consideration on a contract order or a validated order"),
    MutationSpec(FailureMode.MISSING_ORIGINAL_CONSIDERATION_ITEMS, _O,
                 f.ineligible_for_missing_original_consideration_items,
                 m.mutation_missing_original_consideration_items,
                 "Fewer consideration items than originally declared"),
    # Fractions
    MutationSpec(FailureMode.BAD_FRACTION_PARTIAL_CONTRACT_ORDER, _O,
                 f.ineligible_for_bad_fraction_partial_contract_order,
                 m.mutation_bad_fraction_partial_contract_order,
                 "Contract order filled with a fraction other than 1/1"),
    MutationSpec(FailureMode.BAD_FRACTION_NO_FILL, _O,
                 f.ineligible_for_bad_fraction_no_fill, m.mutation_bad_fraction_no_fill,
                 "Zero numerator"),
    MutationSpec(FailureMode.BAD_FRACTION_OVERFILL, _O,
                 f.ineligible_for_bad_fraction_overfill, m.mutation_bad_fraction_overfill,
                 "Numerator above denominator"),
    MutationSpec(FailureMode.PARTIAL_FILLS_NOT_ENABLED_FOR_ORDER, _O,
                 f.ineligible_for_partial_fills_not_enabled_for_order,
                 m.mutation_partial_fills_not_enabled_for_order,
                 "Partial fill of a full-fill order type"),
    # Status
    MutationSpec(FailureMode.CANNOT_CANCEL_ORDER, _O,
                 f.ineligible_for_cannot_cancel_order, m.mutation_cannot_cancel_order,
                 "Cancel from neither the offerer nor the zone"),
    MutationSpec(FailureMode.ORDER_IS_CANCELLED, _O,
                 f.ineligible_for_order_is_cancelled, m.mutation_order_is_cancelled,
                 "Order marked cancelled"),
    MutationSpec(FailureMode.ORDER_ALREADY_FILLED, _O,
                 f.ineligible_for_order_already_filled, m.mutation_order_already_filled,
                 "Order marked fully filled"),
    MutationSpec(FailureMode.ORDER_PARTIALLY_FILLED, _O,
                 f.ineligible_for_order_partially_filled, m.mutation_order_partially_filled,
                 "Basic order marked partially filled"),
    MutationSpec(FailureMode.NO_SPECIFIED_ORDERS_AVAILABLE, _C,
                 f.ineligible_for_no_specified_orders_available, m.mutation_no_specified_orders_available,
                 "Every order of an aggregate fulfillment marked cancelled"),
    # Timing
    MutationSpec(FailureMode.INVALID_TIME_NOT_STARTED, _O,
                 f.ineligible_for_invalid_time, m.mutation_invalid_time_not_started,
                 "Start time in the future"),
    MutationSpec(FailureMode.INVALID_TIME_EXPIRED, _O,
                 f.ineligible_for_invalid_time, m.mutation_invalid_time_expired,
                 "End time reached"),
    # Routing
    MutationSpec(FailureMode.INVALID_CONDUIT, _O,
                 f.ineligible_for_invalid_conduit, m.mutation_invalid_conduit,
                 "Conduit key with no registered conduit"),
    # Native value
    MutationSpec(FailureMode.INSUFFICIENT_NATIVE_TOKENS_SUPPLIED, _C,
                 f.ineligible_for_insufficient_native_tokens, m.mutation_insufficient_native_tokens_supplied,
                 "Supplied value one below the minimum"),
    MutationSpec(FailureMode.NATIVE_TOKEN_TRANSFER_GENERIC_FAILURE, _C,
                 f.ineligible_for_native_token_transfer_generic_failure,
                 m.mutation_native_token_transfer_generic_failure,
                 "Native transfer runs dry mid-execution"),
    MutationSpec(FailureMode.INVALID_MSG_VALUE, _C,
                 f.ineligible_for_invalid_msg_value, m.mutation_invalid_msg_value,
                 "Value supplied to a basic route that takes none"),
    # Approvals
    MutationSpec(FailureMode.OFFER_ITEM_MISSING_APPROVAL, _O,
                 f.ineligible_for_offer_item_missing_approval, m.mutation_offer_item_missing_approval,
                 "Offerer approval revoked for an offered item"),
    MutationSpec(FailureMode.CALLER_MISSING_APPROVAL, _O,
                 f.ineligible_for_caller_missing_approval, m.mutation_caller_missing_approval,
                 "Caller approval revoked for a requested item"),
    # Criteria resolution
    MutationSpec(FailureMode.CRITERIA_NOT_ENABLED_FOR_ITEM, _O,
                 f.ineligible_for_criteria_not_enabled_for_item, m.mutation_criteria_not_enabled_for_item,
                 "Resolver aimed at an item declared without criteria"),
    MutationSpec(FailureMode.INVALID_PROOF_MERKLE, _R,
                 f.ineligible_for_invalid_proof_merkle, m.mutation_invalid_proof_merkle,
                 "Merkle proof element tampered with"),
    MutationSpec(FailureMode.INVALID_PROOF_WILDCARD, _R,
                 f.ineligible_for_invalid_proof_wildcard, m.mutation_invalid_proof_wildcard,
                 "Proof supplied for a wildcard resolution"),
    MutationSpec(FailureMode.ORDER_CRITERIA_RESOLVER_OUT_OF_RANGE, _C,
                 f.ineligible_for_order_criteria_resolver_out_of_range,
                 m.mutation_order_criteria_resolver_out_of_range,
                 "Resolver naming an order past the end"),
    MutationSpec(FailureMode.OFFER_CRITERIA_RESOLVER_OUT_OF_RANGE, _O,
                 f.ineligible_for_item_criteria_resolver_out_of_range,
                 m.mutation_offer_criteria_resolver_out_of_range,
                 "Resolver naming an offer slot past the end"),
    MutationSpec(FailureMode.CONSIDERATION_CRITERIA_RESOLVER_OUT_OF_RANGE, _O,
                 f.ineligible_for_item_criteria_resolver_out_of_range,
                 m.mutation_consideration_criteria_resolver_out_of_range,
                 "Resolver naming a consideration slot past the end"),
    MutationSpec(FailureMode.UNRESOLVED_OFFER_CRITERIA, _R,
                 f.ineligible_for_unresolved_offer_criteria, m.mutation_unresolved_criteria,
                 "Offer criteria item left without a resolver"),
    MutationSpec(FailureMode.UNRESOLVED_CONSIDERATION_CRITERIA, _R,
                 f.ineligible_for_unresolved_consideration_criteria, m.mutation_unresolved_criteria,
                 "Consideration criteria item left without a resolver"),
    # Zones and contract offerers
    MutationSpec(FailureMode.INVALID_RESTRICTED_ORDER_REVERTS, _O,
                 f.ineligible_for_invalid_restricted_order, m.mutation_invalid_restricted_order_reverts,
                 "Zone reverts during validation"),
    MutationSpec(FailureMode.INVALID_RESTRICTED_ORDER_INVALID_MAGIC_VALUE, _O,
                 f.ineligible_for_invalid_restricted_order,
                 m.mutation_invalid_restricted_order_invalid_magic_value,
                 "Zone returns the wrong magic value"),
    MutationSpec(FailureMode.INVALID_CONTRACT_ORDER_GENERATE_REVERTS, _O,
                 f.ineligible_for_invalid_contract_order_generate,
                 m.mutation_invalid_contract_order_generate_reverts,
                 "Contract offerer fails to generate the order"),
    MutationSpec(FailureMode.INVALID_CONTRACT_ORDER_RATIFY_REVERTS, _O,
                 f.ineligible_for_invalid_contract_order_ratify,
                 m.mutation_invalid_contract_order_ratify_reverts,
                 "Contract offerer rejects the order after transfers"),
]


def _build_registry(specs: list[MutationSpec]) -> dict[FailureMode, MutationSpec]:
    registry: dict[FailureMode, MutationSpec] = {}
    for spec in specs:
        if spec.failure in registry:
            raise CatalogError("Failure mode registered twice", {"failure": spec.failure.value})
        registry[spec.failure] = spec

    missing = [mode.value for mode in FailureMode if mode not in registry]
    if missing:
        raise CatalogError("Failure modes without a filter/applicator pair", {"missing": missing})
    return registry


REGISTRY: dict[FailureMode, MutationSpec] = _build_registry(_SPECS)


def get_spec(failure: FailureMode) -> MutationSpec:
    return REGISTRY[failure]


def by_granularity(granularity: Granularity) -> list[MutationSpec]:
    return [spec for spec in REGISTRY.values() if spec.granularity == granularity]


def candidate_targets(context: FuzzContext, granularity: Granularity) -> list[int | None]:
    """Every target a mode of this granularity could be aimed at."""
    if granularity == Granularity.ORDER:
        return list(range(len(context.orders)))
    if granularity == Granularity.CRITERIA_RESOLVER:
        return list(range(len(context.criteria_resolvers)))
    return [None]


def is_eligible(context: FuzzContext, failure: FailureMode, target: int | None = None) -> bool:
    spec = get_spec(failure)
    if spec.granularity == Granularity.CONTEXT:
        return not spec.ineligible(context)
    if target is None:
        raise CatalogError(
            "Failure mode needs a target index",
            {"failure": failure.value, "granularity": spec.granularity.value},
        )
    return not spec.ineligible(context, target)


def eligible_targets(context: FuzzContext, spec: MutationSpec) -> list[int | None]:
    """Targets for which ``spec``'s filter reports eligible."""
    targets = [
        target
        for target in candidate_targets(context, spec.granularity)
        if is_eligible(context, spec.failure, target)
    ]
    if get_settings().log_eligibility:
        logger.debug(
            "%s eligible for %d target(s)",
            spec.failure.value,
            len(targets),
            extra={"failure": spec.failure.value},
        )
    return targets
