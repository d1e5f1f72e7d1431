"""Shared fixtures for the negpath test suite.

``FakeChain`` stands in for every protocol-side collaborator (persisted
status, approvals, conduits, offerer/zone hooks, signing and a miniature
execution driver); ``FakeDeriver`` stands in for the derivation layer.
"""

from __future__ import annotations

import hashlib
from typing import Any, Callable

import pytest

from negpath.core.config import get_settings
from negpath.core.types import (
    EntryPoint,
    ExecutionOutcome,
    FailureReason,
    ItemType,
    OrderType,
    OutcomeStatus,
    Side,
)
from negpath.fuzzer.helpers import EIP1271_MAGIC_VALUE
from negpath.scenario.interfaces import ProtocolEnvironment
from negpath.scenario.model import (
    AdvancedOrder,
    ConsiderationItem,
    CriteriaResolver,
    DerivedExecutions,
    Execution,
    Expectations,
    FuzzContext,
    Item,
    OrderDetails,
    OrderParameters,
    OrderStatus,
    ReceivedItem,
    SpentItem,
    ZERO_KEY,
    same_address,
    to_address,
)


PROTOCOL = to_address(0xF1)
OFFERER = to_address(0xA11CE)
CALLER = to_address(0xB0B)
ZONE = to_address(0x20E)
CONTRACT_OFFERER = to_address(0xC0DE)
ERC20_TOKEN = to_address(0x7001)
NFT_TOKEN = to_address(0x7002)
CONDUIT_KEY = b"\x01" * 32
CONDUIT = to_address(0xC0)
NOW = 1_700_000_000

_BASE_TYPE = {
    ItemType.ERC721_WITH_CRITERIA: ItemType.ERC721,
    ItemType.ERC1155_WITH_CRITERIA: ItemType.ERC1155,
}


# ── Fakes ────────────────────────────────────────────────────────────────────


class FakeDeriver:
    """Derives one execution per non-filtered item from the derived order details."""

    def __init__(self, minimum_value: int = 0) -> None:
        self.minimum_value = minimum_value
        self.fail_with: Exception | None = None
        self.seen_conduit_keys: list[bytes] = []
        self.fulfillment_derivations = 0
        self.fulfillment_conduit_keys: list[bytes] = []

    def get_minimum_required_native_value(self, context: FuzzContext) -> int:
        return self.minimum_value

    def derive_executions(self, context: FuzzContext, value: int) -> DerivedExecutions:
        if self.fail_with is not None:
            raise self.fail_with

        explicit: list[Execution] = []
        available = context.expectations.expected_available_orders
        for index, order in enumerate(context.orders):
            if available and not available[index]:
                continue
            parameters = order.parameters
            details = context.order_details[index]
            self.seen_conduit_keys.append(details.conduit_key)
            for item in details.offer:
                if same_address(parameters.offerer, context.recipient):
                    continue
                explicit.append(Execution(
                    item=ReceivedItem(item.item_type, item.token, item.identifier, item.amount, context.recipient),
                    offerer=parameters.offerer,
                    conduit_key=details.conduit_key,
                ))
            if context.entry_point.is_match:
                continue
            for item in details.consideration:
                if same_address(item.recipient, context.caller):
                    continue
                explicit.append(Execution(
                    item=item, offerer=context.caller, conduit_key=context.fulfiller_conduit_key
                ))
        return DerivedExecutions(explicit=explicit)

    def derive_fulfillments(self, context: FuzzContext) -> None:
        self.fulfillment_derivations += 1
        self.fulfillment_conduit_keys = [details.conduit_key for details in context.order_details]


class FakeChain:
    """In-memory protocol state plus a miniature execution driver."""

    def __init__(self) -> None:
        self.statuses: dict[bytes, OrderStatus] = {}
        self.code: set[str] = set()
        self.allowances: dict[tuple[str, str, str], int] = {}
        self.operators: dict[tuple[str, str, str], bool] = {}
        self.conduits: dict[bytes, str] = {CONDUIT_KEY: CONDUIT}
        self.contract_signatures: dict[tuple[str, bytes], bytes] = {}
        self.empty_offerers: set[str] = set()
        self.reverting_offerers: set[str] = set()
        self.offerer_failures: dict[tuple[str, bytes], FailureReason] = {}
        self.zone_failures: dict[tuple[str, bytes], FailureReason] = {}
        self.inscriptions: list[tuple[str, bytes, Any]] = []
        self.exec_calls = 0

    # ProtocolState
    def get_order_status(self, order_hash: bytes) -> OrderStatus:
        return self.statuses.setdefault(order_hash, OrderStatus())

    def has_code(self, address: str) -> bool:
        return address.lower() in self.code

    # StateInscriber
    def inscribe_order_status_cancelled(self, order_hash: bytes, is_cancelled: bool) -> None:
        self.get_order_status(order_hash).is_cancelled = is_cancelled
        self.inscriptions.append(("cancelled", order_hash, is_cancelled))

    def inscribe_order_status_validated(self, order_hash: bytes, is_validated: bool) -> None:
        self.get_order_status(order_hash).is_validated = is_validated
        self.inscriptions.append(("validated", order_hash, is_validated))

    def inscribe_order_status_numerator_and_denominator(
        self, order_hash: bytes, numerator: int, denominator: int
    ) -> None:
        status = self.get_order_status(order_hash)
        status.numerator, status.denominator = numerator, denominator
        self.inscriptions.append(("fraction", order_hash, (numerator, denominator)))

    # TokenApprovals
    def approve(self, owner: str, token: str, spender: str, amount: int) -> None:
        self.allowances[(owner.lower(), token.lower(), spender.lower())] = amount

    def set_approval_for_all(self, owner: str, token: str, operator: str, approved: bool) -> None:
        self.operators[(owner.lower(), token.lower(), operator.lower())] = approved

    def approve_everything(self, owner: str, spender: str) -> None:
        self.approve(owner, ERC20_TOKEN, spender, 2**256 - 1)
        self.set_approval_for_all(owner, NFT_TOKEN, spender, True)

    def is_approved(self, owner: str, item: SpentItem, spender: str) -> bool:
        key = (owner.lower(), item.token.lower(), spender.lower())
        if item.item_type == ItemType.ERC20:
            return self.allowances.get(key, 0) >= item.amount
        return self.operators.get(key, False)

    # ConduitRegistry
    def get_conduit(self, conduit_key: bytes) -> str | None:
        return self.conduits.get(conduit_key)

    # OffererHooks / ZoneHooks (offerer hooks are bound under ``offerers``)
    def is_valid_signature(self, offerer: str, digest: bytes, signature: bytes) -> bytes:
        if offerer in self.reverting_offerers:
            raise RuntimeError("offerer reverted")
        if offerer in self.empty_offerers:
            self.empty_offerers.discard(offerer)
            return b""
        expected = self.contract_signatures.get((offerer, digest))
        return EIP1271_MAGIC_VALUE if signature == expected else b"\xff\xff\xff\xff"

    def return_empty(self, offerer: str) -> None:
        self.empty_offerers.add(offerer)

    def set_failure_reason(self, account: str, order_hash: bytes, reason: FailureReason) -> None:
        target = self.zone_failures if account == ZONE else self.offerer_failures
        target[(account, order_hash)] = reason

    # OrderSigner
    def digest(self, context: FuzzContext, order_index: int) -> bytes:
        return hashlib.sha256(repr(context.orders[order_index].parameters).encode()).digest()

    def _eoa_signature(self, offerer: str, digest: bytes) -> bytes:
        body = hashlib.sha256(digest + offerer.encode()).digest()
        return body + body + bytes([27])

    def sign_order(self, context: FuzzContext, order_index: int) -> bytes:
        offerer = context.orders[order_index].parameters.offerer
        digest = self.digest(context, order_index)
        signature = self._eoa_signature(offerer, digest)
        if self.has_code(offerer):
            self.contract_signatures[(offerer, digest)] = signature
        return signature

    # ExecutionDriver
    def exec(self, context: FuzzContext) -> ExecutionOutcome:
        self.exec_calls += 1
        reason = self._first_failure(context)
        return ExecutionOutcome(
            entry_point=context.entry_point,
            status=OutcomeStatus.REVERT if reason else OutcomeStatus.SUCCESS,
            revert_reason=reason or "",
        )

    def _first_failure(self, context: FuzzContext) -> str | None:
        if context.entry_point == EntryPoint.CANCEL:
            for order in context.orders:
                p = order.parameters
                if not (same_address(context.caller, p.offerer) or same_address(context.caller, p.zone)):
                    return "CannotCancelOrder"
            return None

        for index, order in enumerate(context.orders):
            p = order.parameters
            if p.start_time > context.block_timestamp or p.end_time <= context.block_timestamp:
                return "InvalidTime"
            if order.numerator == 0 or order.numerator > order.denominator:
                return "BadFraction"
            status = self.get_order_status(context.order_hashes[index])
            if status.is_cancelled:
                return "OrderIsCancelled"
            if status.denominator and status.numerator >= status.denominator:
                return "OrderAlreadyFilled"
            reason = self._signature_failure(context, index, status)
            if reason:
                return reason

        for index, order in enumerate(context.orders):
            p = order.parameters
            if p.conduit_key != ZERO_KEY and p.conduit_key not in self.conduits:
                return "InvalidConduit"
            spender = self.conduits.get(p.conduit_key, PROTOCOL)
            for item in context.order_details[index].offer:
                if item.item_type != ItemType.NATIVE and not self.is_approved(p.offerer, item, spender):
                    return "MissingOffererApproval"
            if context.entry_point.is_match:
                continue
            spender = self.conduits.get(context.fulfiller_conduit_key, PROTOCOL)
            for item in context.order_details[index].consideration:
                if item.item_type != ItemType.NATIVE and not self.is_approved(context.caller, item, spender):
                    return "MissingCallerApproval"

        if context.value < context.env.deriver.get_minimum_required_native_value(context):
            return "InsufficientNativeTokensSupplied"
        return None

    def _signature_failure(self, context: FuzzContext, index: int, status: OrderStatus) -> str | None:
        order = context.orders[index]
        offerer = order.parameters.offerer
        if order.is_contract_order or status.is_validated or same_address(offerer, context.caller):
            return None

        digest = self.digest(context, index)
        if self.has_code(offerer):
            try:
                magic = self.is_valid_signature(offerer, digest, order.signature)
            except RuntimeError:
                return "BadContractSignature"
            return None if magic == EIP1271_MAGIC_VALUE else "BadContractSignature"

        signature = order.signature
        if len(signature) not in (64, 65):
            return "InvalidSignature"
        if len(signature) == 65 and signature[-1] not in (27, 28):
            return "BadSignatureV"
        if signature[:64] != self._eoa_signature(offerer, digest)[:64]:
            return "InvalidSigner"
        return None


# ── Builders ─────────────────────────────────────────────────────────────────


def erc20_offer(amount: int = 100) -> Item:
    return Item(ItemType.ERC20, ERC20_TOKEN, 0, amount, amount)


def nft_consideration(identifier: int = 7, recipient: str = OFFERER) -> ConsiderationItem:
    return ConsiderationItem(ItemType.ERC721, NFT_TOKEN, identifier, 1, 1, recipient=recipient)


def native_consideration(amount: int = 10, recipient: str = OFFERER) -> ConsiderationItem:
    return ConsiderationItem(ItemType.NATIVE, to_address(0), 0, amount, amount, recipient=recipient)


def make_order(
    offer: list[Item] | None = None,
    consideration: list[ConsiderationItem] | None = None,
    offerer: str = OFFERER,
    **parameters: Any,
) -> AdvancedOrder:
    return AdvancedOrder(
        parameters=OrderParameters(
            offerer=offerer,
            offer=offer if offer is not None else [erc20_offer()],
            consideration=consideration if consideration is not None else [nft_consideration()],
            start_time=parameters.pop("start_time", NOW - 100),
            end_time=parameters.pop("end_time", NOW + 100),
            **parameters,
        )
    )


def _details(order: AdvancedOrder, order_hash: bytes, resolvers: list[CriteriaResolver], index: int) -> OrderDetails:
    resolved = {(r.side, r.index): r.identifier for r in resolvers if r.order_index == index}
    p = order.parameters
    return OrderDetails(
        offerer=p.offerer,
        conduit_key=p.conduit_key,
        offer=[
            SpentItem(
                _BASE_TYPE.get(item.item_type, item.item_type),
                item.token,
                resolved.get((Side.OFFER, i), item.identifier_or_criteria),
                item.start_amount,
            )
            for i, item in enumerate(p.offer)
        ],
        consideration=[
            ReceivedItem(
                _BASE_TYPE.get(item.item_type, item.item_type),
                item.token,
                resolved.get((Side.CONSIDERATION, i), item.identifier_or_criteria),
                item.start_amount,
                item.recipient,
            )
            for i, item in enumerate(p.consideration)
        ],
        order_type=p.order_type,
        order_hash=order_hash,
    )


def build_context(
    chain: FakeChain,
    deriver: FakeDeriver,
    orders: list[AdvancedOrder],
    entry_point: EntryPoint = EntryPoint.FULFILL_ORDER,
    caller: str = CALLER,
    value: int = 0,
    resolvers: list[CriteriaResolver] | None = None,
    available: list[bool] | None = None,
    fulfiller_conduit_key: bytes = ZERO_KEY,
    implied_native: int = 0,
    sign: bool = True,
) -> FuzzContext:
    env = ProtocolEnvironment(
        protocol_address=PROTOCOL,
        deriver=deriver,
        state=chain,
        inscriber=chain,
        tokens=chain,
        conduits=chain,
        offerers=chain,
        zones=chain,
        signer=chain,
        driver=chain,
    )
    context = FuzzContext(
        orders=orders,
        entry_point=entry_point,
        env=env,
        caller=caller,
        value=value,
        recipient=caller,
        fulfiller_conduit_key=fulfiller_conduit_key,
        block_timestamp=NOW,
        criteria_resolvers=list(resolvers or []),
    )
    context.order_hashes = [chain.digest(context, i) for i in range(len(orders))]
    if sign:
        for i, order in enumerate(orders):
            if not order.is_contract_order and not order.signature:
                order.signature = chain.sign_order(context, i)
    context.order_details = [
        _details(order, context.order_hashes[i], context.criteria_resolvers, i)
        for i, order in enumerate(orders)
    ]
    context.expectations = Expectations(
        expected_available_orders=available if available is not None else [True] * len(orders),
        expected_implied_native_executions=implied_native,
    )
    context.expectations.expected_explicit_executions = deriver.derive_executions(context, value).explicit
    deriver.seen_conduit_keys.clear()
    return context


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached process-wide; reset around each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def chain() -> FakeChain:
    chain = FakeChain()
    for owner in (OFFERER, CALLER, CONTRACT_OFFERER):
        chain.approve_everything(owner, PROTOCOL)
        chain.approve_everything(owner, CONDUIT)
    return chain


@pytest.fixture
def deriver() -> FakeDeriver:
    return FakeDeriver()


@pytest.fixture
def make_context(chain: FakeChain, deriver: FakeDeriver) -> Callable[..., FuzzContext]:
    """Build a context against the shared chain and deriver fixtures."""

    def factory(orders: list[AdvancedOrder] | None = None, **kwargs: Any) -> FuzzContext:
        return build_context(chain, deriver, orders or [make_order()], **kwargs)

    return factory


@pytest.fixture
def criteria_order() -> AdvancedOrder:
    """Two criteria offer items and one criteria consideration item."""
    return make_order(
        offer=[
            Item(ItemType.ERC721_WITH_CRITERIA, NFT_TOKEN, 0, 1, 1),
            Item(ItemType.ERC721_WITH_CRITERIA, NFT_TOKEN, 0xABC, 1, 1),
        ],
        consideration=[
            ConsiderationItem(ItemType.ERC1155_WITH_CRITERIA, NFT_TOKEN, 0xDEF, 2, 2, recipient=OFFERER),
            nft_consideration(),
        ],
        order_type=OrderType.PARTIAL_OPEN,
    )


@pytest.fixture
def criteria_resolvers() -> list[CriteriaResolver]:
    return [
        CriteriaResolver(order_index=0, side=Side.OFFER, index=0, identifier=1),
        CriteriaResolver(order_index=0, side=Side.OFFER, index=1, identifier=2, criteria_proof=[b"\x22" * 32]),
        CriteriaResolver(
            order_index=0, side=Side.CONSIDERATION, index=0, identifier=3, criteria_proof=[b"\x33" * 32]
        ),
    ]
