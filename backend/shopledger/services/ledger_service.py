# Overview: Service-layer operations for the ledger; sales, reversals and customer settlements.

"""
Ledger Service

Compound transactions that touch more than one entity: product stock, sale
records and customer balances.

LEDGER INVARIANTS (authoritative):
- Variant quantity never drops below 0; a sale is rejected before any write
  when the variant does not hold the requested quantity.
- customer.total_due_cents == sum(sale.due_amount_cents) over that
  customer's current sales, after any sequence of record/settle/reverse.
- Settlements pay the customer's oldest open sales first (date ascending,
  then id).
- Every operation validates against the current snapshot, then commits all
  of its writes as one batch; a failed batch leaves nothing behind.
- profit_cents is fixed at sale time from the purchase price in effect then.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from ..entities import (
    Customer,
    PaymentStatus,
    Sale,
    Size,
    build_sale,
    derive_payment_status,
    new_id,
)
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_amount, coerce_integer
from .entity_store import EntityStore
from .error_state import ErrorState, tracked_batch
from .repository import CUSTOMERS, PRODUCTS, SALES, RecordNotFoundError, Repository

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when a ledger operation is rejected before any write."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# =============================================================================
# INPUTS / RESULTS
# =============================================================================

@dataclass(frozen=True)
class PaymentTerms:
    """How a sale is paid at the counter: Full Paid, Partial Paid(amount) or Due."""
    kind: PaymentStatus
    amount_received_cents: int = 0

    @classmethod
    def full_paid(cls) -> "PaymentTerms":
        return cls(PaymentStatus.FULL_PAID)

    @classmethod
    def partial(cls, amount_received_cents: int) -> "PaymentTerms":
        return cls(PaymentStatus.PARTIAL_PAID, amount_received_cents)

    @classmethod
    def due(cls) -> "PaymentTerms":
        return cls(PaymentStatus.DUE)

    def resolve_paid(self, total_amount_cents: int) -> int:
        if self.kind == PaymentStatus.FULL_PAID:
            return total_amount_cents
        if self.kind == PaymentStatus.DUE:
            return 0
        received = coerce_integer("amount_received_cents", self.amount_received_cents)
        if received < 0 or received > total_amount_cents:
            raise LedgerError(
                "Partial payment must be between 0 and the sale total",
                details={"amount_received_cents": received, "total_amount_cents": total_amount_cents},
            )
        return received


@dataclass(frozen=True)
class SaleInput:
    customer_id: str
    product_id: str
    size: str
    color: str
    quantity: int
    unit_sale_price_cents: int
    payment: PaymentTerms


@dataclass(frozen=True)
class SaleReversal:
    sale: Sale
    # Cash already collected against the sale; returned to the customer outside the ledger
    refund_due_cents: int

    def to_dict(self) -> dict:
        return {"sale": self.sale.to_dict(), "refund_due_cents": self.refund_due_cents}


@dataclass(frozen=True)
class Settlement:
    customer: Customer
    amount_cents: int
    sales: tuple[Sale, ...]
    unallocated_cents: int

    def to_dict(self) -> dict:
        return {
            "customer": self.customer.to_dict(),
            "amount_cents": self.amount_cents,
            "sales": [s.to_dict() for s in self.sales],
            "unallocated_cents": self.unallocated_cents,
        }


# =============================================================================
# ENGINE
# =============================================================================

class LedgerEngine:
    def __init__(
        self,
        store: EntityStore,
        repository: Repository,
        *,
        errors: ErrorState | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self._store = store
        self._repository = repository
        self._errors = errors
        self._clock = clock
        self._id_factory = id_factory

    def record_sale(self, sale_input: SaleInput) -> Sale:
        """
        Record a sale of one variant to one customer.

        Writes: Sale put, Product variants patch, Customer balances patch.
        """
        snapshot = self._store.snapshot()

        customer = snapshot.customers.get(sale_input.customer_id)
        if customer is None:
            raise RecordNotFoundError(CUSTOMERS, sale_input.customer_id)

        product = snapshot.products.get(sale_input.product_id)
        if product is None:
            raise RecordNotFoundError(PRODUCTS, sale_input.product_id)

        quantity = coerce_integer("quantity", sale_input.quantity)
        if quantity < 1:
            raise LedgerError("Quantity must be at least 1", details={"quantity": quantity})

        try:
            unit_price = coerce_amount("unit_sale_price_cents", sale_input.unit_sale_price_cents, allow_zero=False)
        except ValidationError as exc:
            raise LedgerError(str(exc), details={"unit_sale_price_cents": sale_input.unit_sale_price_cents})

        try:
            size = Size(sale_input.size)
        except ValueError:
            raise LedgerError("Unknown size", details={"size": sale_input.size})

        variant = product.find_variant(size, sale_input.color)
        if variant is None:
            raise LedgerError(
                "Variant not found",
                details={"product_id": product.id, "size": size.value, "color": sale_input.color},
            )

        if variant.quantity < quantity:
            raise LedgerError(
                "Insufficient stock for requested quantity",
                details={
                    "product_id": product.id,
                    "size": size.value,
                    "color": variant.color,
                    "requested_quantity": quantity,
                    "on_hand": variant.quantity,
                },
            )

        total = unit_price * quantity
        paid = sale_input.payment.resolve_paid(total)
        due = total - paid
        profit = (unit_price - product.purchase_price_cents) * quantity

        sale = build_sale(
            id=self._id_factory(),
            customer_id=customer.id,
            customer_name=customer.name,
            product_id=product.id,
            product_name=product.name,
            size=size,
            color=variant.color,
            quantity=quantity,
            sale_price_cents=unit_price,
            total_amount_cents=total,
            paid_amount_cents=paid,
            due_amount_cents=due,
            profit_cents=profit,
            date=self._clock(),
            payment_status=derive_payment_status(total, due),
        )

        depleted = product.adjust_variant(size, variant.color, -quantity)

        with tracked_batch(self._repository, self._errors) as batch:
            batch.put(SALES, sale.id, sale)
            batch.patch(PRODUCTS, product.id, {"variants": depleted.variants})
            batch.patch(CUSTOMERS, customer.id, {
                "total_spent_cents": customer.total_spent_cents + total,
                "total_due_cents": customer.total_due_cents + due,
            })

        logger.info(
            "Recorded sale %s: %dx %s (%s/%s) to %s, total=%d paid=%d due=%d",
            sale.id, quantity, product.name, size.value, variant.color, customer.name, total, paid, due,
        )
        return sale

    def reverse_sale(self, sale_id: str) -> SaleReversal:
        """
        Delete a sale and undo its stock and balance effects.

        Stock is added back uncapped. total_spent drops by the sale total and
        total_due by the sale's current due, both floored at 0. Whatever was
        already paid on the sale is reported as refund_due_cents.
        """
        snapshot = self._store.snapshot()

        sale = snapshot.sales.get(sale_id)
        if sale is None:
            raise RecordNotFoundError(SALES, sale_id)

        product = snapshot.products.get(sale.product_id)
        customer = snapshot.customers.get(sale.customer_id)

        with tracked_batch(self._repository, self._errors) as batch:
            if product is not None:
                restored = product.adjust_variant(sale.size, sale.color, sale.quantity)
                batch.patch(PRODUCTS, product.id, {"variants": restored.variants})
            else:
                logger.warning("Reversing sale %s: product %s no longer exists, stock not restored", sale.id, sale.product_id)

            if customer is not None:
                batch.patch(CUSTOMERS, customer.id, {
                    "total_spent_cents": max(0, customer.total_spent_cents - sale.total_amount_cents),
                    "total_due_cents": max(0, customer.total_due_cents - sale.due_amount_cents),
                })
            else:
                logger.warning("Reversing sale %s: customer %s no longer exists, balances not restored", sale.id, sale.customer_id)

            batch.delete(SALES, sale.id)

        logger.info("Reversed sale %s (refund due %d)", sale.id, sale.paid_amount_cents)
        return SaleReversal(sale=sale, refund_due_cents=sale.paid_amount_cents)

    def settle_customer_payment(self, customer_id: str, amount_cents: int) -> Settlement:
        """
        Apply a customer payment to their open sales, oldest first.

        Raises:
            LedgerError: amount is not positive or exceeds the customer's due
            RecordNotFoundError: unknown customer
        """
        amount = coerce_integer("amount_cents", amount_cents)
        if amount <= 0:
            raise LedgerError("Payment amount must be positive", details={"amount_cents": amount})

        snapshot = self._store.snapshot()
        customer = snapshot.customers.get(customer_id)
        if customer is None:
            raise RecordNotFoundError(CUSTOMERS, customer_id)

        if amount > customer.total_due_cents:
            raise LedgerError(
                "Payment exceeds the customer's outstanding due",
                details={"amount_cents": amount, "total_due_cents": customer.total_due_cents},
            )

        open_sales = sorted(
            (s for s in snapshot.sales_for_customer(customer.id) if s.due_amount_cents > 0),
            key=lambda s: (s.date, s.id),
        )

        remaining = amount
        settled: list[Sale] = []
        for sale in open_sales:
            if remaining <= 0:
                break
            pay = min(sale.due_amount_cents, remaining)
            remaining -= pay
            new_due = sale.due_amount_cents - pay
            settled.append(replace(
                sale,
                due_amount_cents=new_due,
                paid_amount_cents=sale.paid_amount_cents + pay,
                payment_status=PaymentStatus.FULL_PAID if new_due == 0 else PaymentStatus.PARTIAL_PAID,
            ))

        updated_customer = replace(customer, total_due_cents=max(0, customer.total_due_cents - amount))

        with tracked_batch(self._repository, self._errors) as batch:
            batch.patch(CUSTOMERS, customer.id, {"total_due_cents": updated_customer.total_due_cents})
            for sale in settled:
                batch.patch(SALES, sale.id, {
                    "due_amount_cents": sale.due_amount_cents,
                    "paid_amount_cents": sale.paid_amount_cents,
                    "payment_status": sale.payment_status,
                })

        if remaining > 0:
            logger.warning(
                "Settlement for customer %s left %d unallocated; open sales do not cover total_due",
                customer.id, remaining,
            )
        logger.info("Settled %d for customer %s across %d sales", amount, customer.id, len(settled))

        return Settlement(
            customer=updated_customer,
            amount_cents=amount,
            sales=tuple(settled),
            unallocated_cents=remaining,
        )
