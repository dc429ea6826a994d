"""
Tests for catalog revalidation
"""

import pytest
from decimal import Decimal

from storefront.cart import CartItem
from storefront.catalog import (
    CatalogService,
    LineIssue,
    VariantInfo,
    apply_revalidation,
    check_line,
)


@pytest.fixture
def catalog(supabase_client_factory, variant_row, tee_v1, hoodie):
    rows = [
        variant_row(tee_v1.variant_id, tee_v1.product_id, price=24.99, stock=10),
        variant_row(hoodie.variant_id, hoodie.product_id, price=39.50, stock=3, name="RAF Hoodie"),
    ]
    return CatalogService(supabase_client_factory(rows))


class TestVariantInfo:
    """Tests for VariantInfo.from_row."""

    def test_product_price_used(self, variant_row):
        """Test the product list price applies when the variant has none."""
        info = VariantInfo.from_row(variant_row("v1", "p1", price=24.99))
        assert info.unit_price == Decimal("24.99")
        assert info.name == "Parachute Regiment Tee"
        assert info.image_url == "/images/para-tee.jpg"

    def test_variant_price_overrides(self, variant_row):
        """Test a variant-specific price wins."""
        info = VariantInfo.from_row(variant_row("v1", "p1", price=24.99, variant_price=27.5))
        assert info.unit_price == Decimal("27.50")

    def test_nested_product_list(self, variant_row):
        """Test the embedded product may come back as a list."""
        row = variant_row("v1", "p1")
        row["products"] = [row["products"]]
        assert VariantInfo.from_row(row).name == "Parachute Regiment Tee"


class TestCheckLine:
    """Tests for check_line."""

    def _variant(self, price="24.99", stock=10):
        return VariantInfo(
            variant_id="var-m-olive",
            product_id="prod-para",
            sku="SKU-1",
            name="Parachute Regiment Tee",
            unit_price=Decimal(price),
            stock_quantity=stock,
        )

    def test_ok(self, tee_v1):
        assert check_line(CartItem.from_candidate(tee_v1), self._variant()).ok

    def test_missing(self, tee_v1):
        line = check_line(CartItem.from_candidate(tee_v1), None)
        assert line.issues == (LineIssue.MISSING,)
        assert line.invalid

    def test_out_of_stock(self, tee_v1):
        line = check_line(CartItem.from_candidate(tee_v1), self._variant(stock=0))
        assert LineIssue.OUT_OF_STOCK in line.issues
        assert line.invalid

    def test_stock_reduced(self, tee_v1):
        line = check_line(CartItem.from_candidate(tee_v1, quantity=5), self._variant(stock=2))
        assert line.issues == (LineIssue.STOCK_REDUCED,)
        assert not line.invalid

    def test_price_changed(self, tee_v1):
        line = check_line(CartItem.from_candidate(tee_v1), self._variant(price="29.99"))
        assert line.issues == (LineIssue.PRICE_CHANGED,)


class TestCatalogService:
    """Tests for CatalogService against a mocked Supabase client."""

    @pytest.mark.asyncio
    async def test_get_variants(self, supabase_client_factory, variant_row):
        """Test variants come back keyed by id."""
        client = supabase_client_factory([variant_row("v1", "p1", stock=4)])
        variants = await CatalogService(client).get_variants(["v1", "v1"])

        assert variants["v1"].stock_quantity == 4
        client.table.assert_called_with("product_variants")

    @pytest.mark.asyncio
    async def test_get_variants_empty_ids(self, supabase_client_factory):
        """Test no query is made for an empty cart."""
        client = supabase_client_factory([])
        assert await CatalogService(client).get_variants([]) == {}
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_revalidate_clean_cart(self, store, catalog, tee_v1, hoodie):
        """Test a cart matching the catalog has no drift."""
        store.add_item(tee_v1)
        store.add_item(hoodie)

        report = await catalog.revalidate(store.items)

        assert not report.has_drift
        assert report.to_dict()["signal"] is None
        assert report.variant_for(hoodie.item_id).name == "RAF Hoodie"

    @pytest.mark.asyncio
    async def test_revalidate_and_clear_invalid(self, store, supabase_client_factory, variant_row, tee_v1, hoodie):
        """Test gone variants are removed and oversized lines trimmed."""
        store.add_item(tee_v1)
        for _ in range(3):
            store.add_item(hoodie)
        catalog = CatalogService(supabase_client_factory([
            variant_row(hoodie.variant_id, hoodie.product_id, price=39.50, stock=1),
        ]))

        report = await catalog.revalidate(store.items)
        changed = apply_revalidation(store, report)

        assert report.has_drift
        assert report.to_dict()["signal"] == "STALE_REFERENCE"
        assert set(changed) == {tee_v1.item_id, hoodie.item_id}
        assert store.get_item(tee_v1.item_id) is None
        assert store.get_item(hoodie.item_id).quantity == 1
        assert store.total_price == Decimal("39.50")

    @pytest.mark.asyncio
    async def test_price_drift_not_applied(self, store, supabase_client_factory, variant_row, tee_v1):
        """Test a price change is reported but the cart is left alone."""
        store.add_item(tee_v1)
        catalog = CatalogService(supabase_client_factory([
            variant_row(tee_v1.variant_id, tee_v1.product_id, price=29.99),
        ]))

        report = await catalog.revalidate(store.items)
        changed = apply_revalidation(store, report)

        assert report.has_drift
        assert changed == []
        assert store.get_item(tee_v1.item_id).price == Decimal("24.99")
        assert report.to_dict()["lines"][0]["currentPrice"] == 29.99
