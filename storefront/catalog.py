"""Catalog Service.

Live product variant lookups against Supabase, used to check a cart's
price and stock snapshot before it is sent to checkout.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from storefront.cart import CartItem, CartStore
from storefront.errors import CartSignal
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import round_money, to_float

logger = get_logger(__name__)

VARIANT_COLUMNS = (
    "id,sku,stock_quantity,price,size,color,product_id,is_active,"
    "products(id,name,price,main_image_url)"
)


@dataclass
class VariantInfo:
    """Current catalog state of one variant."""

    variant_id: str
    product_id: str
    sku: str
    name: str
    unit_price: Decimal
    stock_quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "VariantInfo":
        product = row.get("products") or {}
        if isinstance(product, list):
            product = product[0] if product else {}

        # Variant-level price wins over the product list price
        price = row.get("price")
        if price is None:
            price = product.get("price")

        return cls(
            variant_id=row["id"],
            product_id=row.get("product_id") or product.get("id", ""),
            sku=row.get("sku") or "",
            name=product.get("name", "Unknown"),
            unit_price=round_money(price),
            stock_quantity=int(row.get("stock_quantity") or 0),
            size=row.get("size"),
            color=row.get("color"),
            image_url=product.get("main_image_url"),
        )


class LineIssue(str, Enum):
    """Ways a cart line can disagree with the catalog."""

    PRICE_CHANGED = "price_changed"
    STOCK_REDUCED = "stock_reduced"  # fewer units left than the cart holds
    OUT_OF_STOCK = "out_of_stock"
    MISSING = "missing"  # variant deleted or deactivated


@dataclass
class LineCheck:
    item: CartItem
    variant: Optional[VariantInfo]
    issues: Tuple[LineIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def invalid(self) -> bool:
        """Line cannot be bought at all."""
        return LineIssue.MISSING in self.issues or LineIssue.OUT_OF_STOCK in self.issues

    def to_dict(self) -> dict:
        return {
            "id": self.item.id,
            "name": self.item.name,
            "issues": [issue.value for issue in self.issues],
            "cartPrice": to_float(self.item.price),
            "currentPrice": to_float(self.variant.unit_price) if self.variant else None,
            "quantity": self.item.quantity,
            "available": self.variant.stock_quantity if self.variant else 0,
        }


@dataclass
class RevalidationReport:
    lines: List[LineCheck] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return any(not line.ok for line in self.lines)

    @property
    def stale_lines(self) -> List[LineCheck]:
        return [line for line in self.lines if not line.ok]

    def variant_for(self, item_id: str) -> Optional[VariantInfo]:
        for line in self.lines:
            if line.item.id == item_id:
                return line.variant
        return None

    def to_dict(self) -> dict:
        return {
            "hasDrift": self.has_drift,
            "signal": CartSignal.STALE_REFERENCE.value if self.has_drift else None,
            "lines": [line.to_dict() for line in self.stale_lines],
        }


def check_line(item: CartItem, variant: Optional[VariantInfo]) -> LineCheck:
    """Compare one cart line with the live variant."""
    if variant is None:
        return LineCheck(item=item, variant=None, issues=(LineIssue.MISSING,))

    issues = []
    if variant.stock_quantity < 1:
        issues.append(LineIssue.OUT_OF_STOCK)
    elif variant.stock_quantity < item.quantity:
        issues.append(LineIssue.STOCK_REDUCED)
    if round_money(item.price) != variant.unit_price:
        issues.append(LineIssue.PRICE_CHANGED)
    return LineCheck(item=item, variant=variant, issues=tuple(issues))


class CatalogService:
    """Read-only access to product_variants for cart checks."""

    def __init__(self, client) -> None:
        self.client = client

    async def get_variants(self, variant_ids: Iterable[str]) -> Dict[str, VariantInfo]:
        """Get active variants keyed by id. Unknown ids are simply absent."""
        ids = sorted(set(variant_ids))
        if not ids:
            return {}
        result = (
            await self.client.table("product_variants")
            .select(VARIANT_COLUMNS)
            .in_("id", ids)
            .eq("is_active", True)
            .execute()
        )
        variants = {}
        for row in result.data or []:
            info = VariantInfo.from_row(row)
            variants[info.variant_id] = info
        return variants

    async def revalidate(self, items: Iterable[CartItem]) -> RevalidationReport:
        """Check every cart line against the live catalog."""
        items = list(items)
        variants = await self.get_variants(item.variant_id for item in items)
        report = RevalidationReport(
            lines=[check_line(item, variants.get(item.variant_id)) for item in items],
        )

        for line in report.stale_lines:
            logger.info(
                "%s: cart line %s %s",
                CartSignal.STALE_REFERENCE.value,
                sanitize_id_for_logging(line.item.variant_id),
                ",".join(issue.value for issue in line.issues),
            )
        return report


def apply_revalidation(store: CartStore, report: RevalidationReport) -> List[str]:
    """
    Clear invalid items from the cart.

    Missing and sold-out lines are removed; lines holding more than is
    left are cut down to the current stock. Price drift is left for the
    customer to confirm. Returns the ids of the lines that changed.
    """
    changed = []
    for line in report.stale_lines:
        if line.invalid:
            store.remove_item(line.item.id)
            changed.append(line.item.id)
        elif LineIssue.STOCK_REDUCED in line.issues:
            store.update_quantity(line.item.id, line.variant.stock_quantity)
            changed.append(line.item.id)
    return changed
