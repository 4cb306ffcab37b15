from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from store import services
from store.models import PricingRegion, Product, ProductRegionPrice, StoreSettings
from StorefrontAdmin.errors import ConflictError, NotFoundError, ValidationError


class ResolveRegionTests(TestCase):
    def setUp(self):
        self.eu = services.create_region(code="EU", name="Europe", currency="EUR", countries=["FR", "DE"], sort_order=1)
        self.row = services.create_region(code="ROW", name="Rest of World", currency="USD", countries=[], is_default=True, sort_order=99)

    def test_member_country(self):
        self.assertEqual(services.resolve_region("FR"), self.eu)

    def test_lower_case_is_normalized(self):
        self.assertEqual(services.resolve_region("de"), self.eu)

    def test_unknown_country_falls_back_to_default(self):
        self.assertEqual(services.resolve_region("JP"), self.row)

    def test_no_country_returns_default(self):
        self.assertEqual(services.resolve_region(None), self.row)
        self.assertEqual(services.resolve_region(""), self.row)

    def test_empty_country_list_never_matches_exactly(self):
        other = services.create_region(code="XX", name="Empty", currency="XXX", countries=[], sort_order=0)
        self.assertNotEqual(services.resolve_region("JP"), other)

    def test_no_default_returns_none(self):
        PricingRegion.objects.filter(pk=self.row.pk).update(is_default=False)
        self.assertIsNone(services.resolve_region("JP"))
        self.assertEqual(services.resolve_region("FR"), self.eu)


class DefaultRegionTests(TestCase):
    def setUp(self):
        self.us = services.create_region(code="US", name="United States", currency="USD", countries=["US"], is_default=True)
        self.uk = services.create_region(code="UK", name="United Kingdom", currency="GBP", countries=["GB"])

    def test_setting_default_clears_previous(self):
        services.update_region(self.uk.pk, is_default=True)
        self.us.refresh_from_db()
        self.uk.refresh_from_db()
        self.assertFalse(self.us.is_default)
        self.assertTrue(self.uk.is_default)
        self.assertEqual(PricingRegion.objects.filter(is_default=True).count(), 1)

    def test_creating_default_clears_previous(self):
        row = services.create_region(code="ROW", name="Rest", currency="USD", is_default=True)
        self.assertEqual(list(PricingRegion.objects.filter(is_default=True)), [row])

    def test_database_rejects_second_default(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                PricingRegion.objects.filter(pk=self.uk.pk).update(is_default=True)

    def test_delete_default_is_refused(self):
        with self.assertRaises(ConflictError) as ctx:
            services.delete_region(self.us.pk)
        self.assertEqual(ctx.exception.message, "Cannot delete the default pricing region")
        self.assertTrue(PricingRegion.objects.filter(pk=self.us.pk).exists())

    def test_unsetting_default_is_allowed(self):
        services.update_region(self.us.pk, is_default=False)
        self.assertIsNone(services.find_default_region())

    def test_delete_removes_regional_prices(self):
        product = Product.objects.create(name="Mug", slug="mug", price=Decimal("10.00"))
        ProductRegionPrice.objects.create(product=product, region=self.uk, price=Decimal("8.00"))
        services.delete_region(self.uk.pk)
        self.assertFalse(PricingRegion.objects.filter(pk=self.uk.pk).exists())
        self.assertFalse(ProductRegionPrice.objects.exists())
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

    def test_delete_missing_region(self):
        with self.assertRaises(NotFoundError):
            services.delete_region(9999)


class RegionValidationTests(TestCase):
    def setUp(self):
        services.create_region(code="EU", name="Europe", currency="eur", countries=["fr", "DE", "FR"])

    def test_values_are_normalized(self):
        eu = PricingRegion.objects.get(code="EU")
        self.assertEqual(eu.currency, "EUR")
        self.assertEqual(eu.countries, ["FR", "DE"])

    def test_required_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_region(code="", name="Nothing", currency="USD")
        self.assertEqual(ctx.exception.message, "Code, name, and currency are required")

    def test_code_conflict_is_case_insensitive(self):
        with self.assertRaises(ConflictError) as ctx:
            services.create_region(code="eu", name="Europe 2", currency="EUR")
        self.assertEqual(ctx.exception.message, "A region with this code already exists")

    def test_overlapping_countries_rejected(self):
        with self.assertRaises(ConflictError):
            services.create_region(code="FR", name="France", currency="EUR", countries=["FR"])

    def test_update_may_keep_own_countries(self):
        eu = PricingRegion.objects.get(code="EU")
        updated = services.update_region(eu.pk, countries=["FR", "DE", "IT"], name="Eurozone")
        self.assertEqual(updated.countries, ["FR", "DE", "IT"])
        self.assertEqual(updated.name, "Eurozone")

    def test_invalid_country_code(self):
        with self.assertRaises(ValidationError):
            services.create_region(code="XX", name="Bad", currency="USD", countries=["FRA"])

    def test_field_lengths_checked_before_saving(self):
        for fields in [
            {"code": "EUROPEANUNION", "name": "Europe", "currency": "EUR"},
            {"code": "EZ", "name": "E" * 101, "currency": "EUR"},
            {"code": "EZ", "name": "Europe", "currency": "EURO"},
            {"code": "EZ", "name": "Europe", "currency": "E1"},
        ]:
            with self.assertRaises(ValidationError):
                services.create_region(**fields)
        self.assertFalse(PricingRegion.objects.filter(code="EZ").exists())

        eu = PricingRegion.objects.get(code="EU")
        with self.assertRaises(ValidationError):
            services.update_region(eu.pk, currency="EURO")
        with self.assertRaises(ValidationError):
            services.update_region(eu.pk, code="EUROPEANUNION")
        eu.refresh_from_db()
        self.assertEqual((eu.code, eu.currency), ("EU", "EUR"))

    def test_default_flag_must_be_boolean(self):
        with self.assertRaises(ValidationError):
            services.create_region(code="UK", name="United Kingdom", currency="GBP", is_default="false")
        eu = PricingRegion.objects.get(code="EU")
        with self.assertRaises(ValidationError):
            services.update_region(eu.pk, is_default=1)
        self.assertFalse(PricingRegion.objects.filter(is_default=True).exists())

    def test_list_includes_price_count(self):
        regions = list(services.list_regions())
        self.assertEqual(regions[0].price_count, 0)


class ProductPriceTests(TestCase):
    def setUp(self):
        self.eu = services.create_region(code="EU", name="Europe", currency="EUR", countries=["FR"], sort_order=1)
        self.row = services.create_region(code="ROW", name="Rest", currency="USD", is_default=True, sort_order=2)
        self.product = Product.objects.create(name="Mug", slug="mug", price=Decimal("10.00"))

    def test_upsert_and_delete(self):
        results = services.set_product_prices(self.product.pk, [
            {"regionId": self.eu.pk, "price": "9.50", "compareAtPrice": 12},
            {"regionId": 9999, "price": 1},
        ])
        self.assertEqual(results[0], {"regionId": self.eu.pk, "success": True, "action": "updated"})
        self.assertFalse(results[1]["success"])
        override = ProductRegionPrice.objects.get(product=self.product, region=self.eu)
        self.assertEqual(override.price, Decimal("9.50"))
        self.assertEqual(services.effective_price(self.product, override), (Decimal("9.50"), Decimal("12")))

        results = services.set_product_prices(self.product.pk, [{"regionId": self.eu.pk, "price": None}])
        self.assertEqual(results[0]["action"], "deleted")
        self.assertFalse(ProductRegionPrice.objects.exists())

    def test_regional_price_falls_back_to_base(self):
        ProductRegionPrice.objects.create(product=self.product, region=self.eu, price=Decimal("9.00"))
        self.assertEqual(services.regional_price(self.product, self.eu)[0], Decimal("9.00"))
        self.assertEqual(services.regional_price(self.product, self.row), (Decimal("10.00"), None))
        self.assertEqual(services.regional_price(self.product, None)[0], Decimal("10.00"))

    def test_rows_cover_every_region(self):
        ProductRegionPrice.objects.create(product=self.product, region=self.eu, price=Decimal("9.00"))
        product, rows = services.get_product_prices(self.product.pk)
        self.assertEqual(product, self.product)
        self.assertEqual([region.code for region, _ in rows], ["EU", "ROW"])
        self.assertIsNotNone(rows[0][1])
        self.assertIsNone(rows[1][1])

    def test_negative_price_rejected(self):
        with self.assertRaises(ValidationError):
            services.set_product_prices(self.product.pk, [{"regionId": self.eu.pk, "price": -1}])

    def test_prices_must_be_list(self):
        with self.assertRaises(ValidationError):
            services.set_product_prices(self.product.pk, None)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            services.get_product_prices(9999)


class StoreSettingsTests(TestCase):
    @override_settings(STORE_DEFAULT_NAME="Test Shop", STORE_DEFAULT_CURRENCY="EUR")
    def test_created_lazily_once(self):
        store = services.get_store_settings()
        self.assertEqual(store.store_name, "Test Shop")
        self.assertEqual(store.currency, "EUR")
        self.assertEqual(services.get_store_settings(), store)
        self.assertEqual(StoreSettings.objects.count(), 1)
