"""
Sales and refunds for one business.

A sale is priced on the server: unit prices come from the product rows
and tax from the business tax rate, so a client can only choose what is
sold and how it is paid. Sale lines are embedded in the sale row.

Refunds never exceed what is left on a sale line. The sale row carries a
`version` that is bumped on every refund; a refund whose sale changed
underneath it is undone and reported as a conflict.

Stock levels are not touched by either flow.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from poscore.products import PRODUCTS
from poscore.customers import CUSTOMERS
from poscore.storage import TableStore
from poscore.tenant import TenantScope, get_business
from poscore.utils import Logger, serialize_doc
from poscore.utils.exceptions import (
    ConflictError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from .schemas import PaymentMethod

logger = Logger("sales")

SALES = "sales"
REFUNDS = "refunds"


def _money(value: float) -> float:
    return round(value, 2)


def _as_utc(moment: datetime) -> datetime:
    # rows read back from a naive client carry UTC without a tzinfo
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _document_number(prefix: str, now: datetime) -> str:
    return f"{prefix}-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def settle_payment(
    method: PaymentMethod,
    total: float,
    cash_received: Optional[float],
    card_amount: Optional[float],
) -> dict:
    """Check the tendered amounts against the sale total and work out change."""
    if method is PaymentMethod.CASH:
        cash = total if cash_received is None else cash_received
        if cash < total:
            raise ValidationError("Insufficient cash received")
        return {"cash_received": _money(cash), "cash_change": _money(cash - total), "card_amount": 0.0}

    if method is PaymentMethod.CARD:
        card = total if card_amount is None else card_amount
        if _money(card) != total:
            raise ValidationError("Card amount must equal the sale total")
        return {"cash_received": 0.0, "cash_change": 0.0, "card_amount": _money(card)}

    card = card_amount or 0.0
    cash = cash_received or 0.0
    if card <= 0:
        raise ValidationError("Mixed payment requires a card amount")
    if card > total:
        raise ValidationError("Card amount exceeds the sale total")
    if _money(card + cash) < total:
        raise ValidationError("Insufficient payment")
    return {
        "cash_received": _money(cash),
        "cash_change": _money(cash - (total - card)),
        "card_amount": _money(card),
    }


class SaleService:
    def __init__(self, store: TableStore, business_id: str):
        self.store = store
        self.scope = TenantScope(store, business_id)

    async def _tax_rate(self) -> float:
        business = await get_business(self.store, self.scope.business_id)
        if not business:
            raise NotFoundError("Business not found")
        return float(business.get("tax_rate") or 0)

    async def create_sale(self, data: dict, cashier_id: str) -> dict:
        tax_rate = await self._tax_rate()

        if data.get("customer_id") and not await self.scope.select_single(
            CUSTOMERS, id=data["customer_id"], is_active=True
        ):
            raise ValidationError("Unknown customer")

        items = []
        for line in data["items"]:
            product = await self.scope.select_single(
                PRODUCTS, id=line["product_id"], is_active=True
            )
            if not product:
                raise ValidationError(f"Unknown product {line['product_id']}")

            unit_price = float(product["selling_price"])
            subtotal = _money(unit_price * line["quantity"])
            tax = _money(subtotal * tax_rate / 100) if product.get("taxable", True) else 0.0
            items.append(
                {
                    "id": str(uuid.uuid4()),
                    "product_id": product["id"],
                    "name": product["name"],
                    "sku": product.get("sku"),
                    "quantity": line["quantity"],
                    "unit_price": unit_price,
                    "subtotal": subtotal,
                    "tax_amount": tax,
                    "total": _money(subtotal + tax),
                    "quantity_refunded": 0,
                }
            )

        subtotal = _money(sum(i["subtotal"] for i in items))
        tax_amount = _money(sum(i["tax_amount"] for i in items))
        discount = _money(data.get("discount") or 0)
        if discount > subtotal:
            raise ValidationError("Discount exceeds the sale subtotal")
        total = _money(subtotal + tax_amount - discount)

        method = PaymentMethod(data["payment_method"])
        payment = settle_payment(method, total, data.get("cash_received"), data.get("card_amount"))

        now = datetime.now(timezone.utc)
        sale = await self.scope.insert(
            SALES,
            {
                "sale_number": _document_number("SALE", now),
                "cashier_id": cashier_id,
                "customer_id": data.get("customer_id"),
                "payment_method": method.value,
                "notes": data.get("notes"),
                "items": items,
                "subtotal": subtotal,
                "tax_amount": tax_amount,
                "discount": discount,
                "total": total,
                **payment,
                "status": "completed",
                "refund_status": None,
                "total_refunded": 0.0,
                "version": 0,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"sale {sale['sale_number']} ({total:.2f}) rung up by {cashier_id}")
        return serialize_doc(sale)

    async def get_sale(self, sale_id: str) -> dict:
        return serialize_doc(await self._get(sale_id))

    async def list_sales(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        customer_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict]:
        """Newest first. Dates are inclusive and compared in UTC."""
        where = {"customer_id": customer_id} if customer_id else {}
        rows = await self.scope.select_many(
            SALES, order_by="created_at", descending=True, **where
        )
        if start_date:
            rows = [r for r in rows if _as_utc(r["created_at"]).date() >= start_date]
        if end_date:
            rows = [r for r in rows if _as_utc(r["created_at"]).date() <= end_date]
        return serialize_doc(rows[:limit])

    async def _get(self, sale_id: str) -> dict:
        sale = await self.scope.select_single(SALES, id=sale_id)
        if not sale:
            raise NotFoundError("Sale not found")
        return sale


class RefundService:
    def __init__(self, store: TableStore, business_id: str):
        self.store = store
        self.scope = TenantScope(store, business_id)

    async def create_refund(self, data: dict, processed_by: str) -> dict:
        sale = await self.scope.select_single(SALES, id=data["sale_id"])
        if not sale:
            raise NotFoundError("Sale not found")

        now = datetime.now(timezone.utc)
        await self._check_refund_window(sale, now)

        requested: dict[str, int] = {}
        for line in data["items"]:
            if line["sale_item_id"] in requested:
                raise ValidationError(f"Item {line['sale_item_id']} listed twice")
            requested[line["sale_item_id"]] = line["quantity"]

        sale_items = {i["id"]: i for i in sale["items"]}
        refund_items = []
        for item_id, quantity in requested.items():
            item = sale_items.get(item_id)
            if not item:
                raise ValidationError(f"Item {item_id} not found in sale")
            if quantity > item["quantity"] - item.get("quantity_refunded", 0):
                raise ValidationError("Quantity exceeds available for item")

            subtotal = _money(item["unit_price"] * quantity)
            tax = _money(item["tax_amount"] * quantity / item["quantity"])
            refund_items.append(
                {
                    "sale_item_id": item_id,
                    "product_id": item["product_id"],
                    "quantity": quantity,
                    "unit_price": item["unit_price"],
                    "subtotal": subtotal,
                    "tax_amount": tax,
                    "total": _money(subtotal + tax),
                }
            )

        updated_items = [
            {**i, "quantity_refunded": i.get("quantity_refunded", 0) + requested.get(i["id"], 0)}
            for i in sale["items"]
        ]
        fully_refunded = all(i["quantity_refunded"] >= i["quantity"] for i in updated_items)
        refund_type = "FULL" if fully_refunded else "PARTIAL"
        total = _money(sum(r["total"] for r in refund_items))

        refund = await self.scope.insert(
            REFUNDS,
            {
                "refund_number": _document_number("REF", now),
                "sale_id": sale["id"],
                "refund_type": refund_type,
                "items": refund_items,
                "subtotal": _money(sum(r["subtotal"] for r in refund_items)),
                "tax_amount": _money(sum(r["tax_amount"] for r in refund_items)),
                "total": total,
                "payment_method": PaymentMethod(data["payment_method"]).value,
                "reason": data["reason"],
                "notes": data.get("notes"),
                "status": "COMPLETED",
                "processed_by": processed_by,
                "created_at": now,
            },
        )

        try:
            updated = await self.scope.update(
                SALES,
                {
                    "items": updated_items,
                    "refund_status": refund_type,
                    "total_refunded": _money(sale.get("total_refunded", 0) + total),
                    "version": sale["version"] + 1,
                    "updated_at": now,
                },
                id=sale["id"],
                version=sale["version"],
            )
        except UpstreamFailure:
            await self._discard(refund["id"])
            raise
        if updated is None:
            await self._discard(refund["id"])
            raise ConflictError("Sale was changed by another refund; reload and try again")

        logger.info(
            f"refund {refund['refund_number']} ({total:.2f}) on sale {sale['sale_number']} "
            f"by {processed_by}; sale now {refund_type}"
        )
        return serialize_doc(refund)

    async def get_refund(self, refund_id: str) -> dict:
        refund = await self.scope.select_single(REFUNDS, id=refund_id)
        if not refund:
            raise NotFoundError("Refund not found")
        return serialize_doc(refund)

    async def list_refunds(self, sale_id: Optional[str] = None) -> dict:
        where = {"sale_id": sale_id} if sale_id else {}
        rows = await self.scope.select_many(
            REFUNDS, order_by="created_at", descending=True, **where
        )
        return {
            "refunds": serialize_doc(rows),
            "totalRefunded": _money(sum(r["total"] for r in rows)),
            "count": len(rows),
        }

    async def _check_refund_window(self, sale: dict, now: datetime) -> None:
        business = await get_business(self.store, self.scope.business_id)
        limit = (business or {}).get("refund_time_limit_days")
        if not limit:
            return
        age = now - _as_utc(sale["created_at"])
        if age.total_seconds() > limit * 86400:
            raise ValidationError(f"Refund period expired. Limit is {limit} days.")

    async def _discard(self, refund_id: str) -> None:
        try:
            await self.scope.delete(REFUNDS, id=refund_id)
        except UpstreamFailure as e:
            logger.error(f"refund {refund_id} could not be removed after a failed sale update: {e}")
