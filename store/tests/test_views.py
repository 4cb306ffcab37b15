import json
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from store.models import PricingRegion, Product, ProductRegionPrice
from store.services import create_region


class PricingRegionViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.staff = User.objects.create_user(username="staff", email="staff@example.com", password="pw", is_staff=True)
        self.customer = User.objects.create_user(username="customer", email="customer@example.com", password="pw")
        self.row = create_region(code="ROW", name="Rest of World", currency="USD", is_default=True, sort_order=99)

    def post_json(self, path, payload, method="post"):
        return getattr(self.client, method)(path, data=json.dumps(payload), content_type="application/json")

    def test_list_is_public(self):
        response = self.client.get("/api/pricing-regions")
        self.assertEqual(response.status_code, 200)
        regions = response.json()["regions"]
        self.assertEqual(regions[0]["code"], "ROW")
        self.assertTrue(regions[0]["isDefault"])
        self.assertEqual(regions[0]["priceCount"], 0)

    def test_create_requires_staff(self):
        payload = {"code": "EU", "name": "Europe", "currency": "EUR", "countries": ["FR"]}
        self.assertEqual(self.post_json("/api/pricing-regions", payload).status_code, 401)
        self.client.force_login(self.customer)
        self.assertEqual(self.post_json("/api/pricing-regions", payload).status_code, 403)
        self.assertFalse(PricingRegion.objects.filter(code="EU").exists())

    def test_create_and_flip_default(self):
        self.client.force_login(self.staff)
        response = self.post_json("/api/pricing-regions", {
            "code": "eu", "name": "Europe", "currency": "EUR", "countries": ["fr"], "isDefault": True,
        })
        self.assertEqual(response.status_code, 201)
        region = response.json()["region"]
        self.assertEqual(region["code"], "EU")
        self.assertEqual(region["countries"], ["FR"])
        self.assertTrue(region["isDefault"])
        self.row.refresh_from_db()
        self.assertFalse(self.row.is_default)

    def test_create_conflict(self):
        self.client.force_login(self.staff)
        response = self.post_json("/api/pricing-regions", {"code": "row", "name": "Again", "currency": "USD"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "A region with this code already exists", "code": "CONFLICT"})

    def test_update_and_delete(self):
        eu = create_region(code="EU", name="Europe", currency="EUR", countries=["FR"])
        self.client.force_login(self.staff)
        response = self.post_json(f"/api/pricing-regions/{eu.pk}", {"name": "Eurozone"}, method="put")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["region"]["name"], "Eurozone")
        self.assertEqual(response.json()["region"]["countries"], ["FR"])

        response = self.client.delete(f"/api/pricing-regions/{eu.pk}")
        self.assertEqual(response.json(), {"success": True})

        response = self.client.delete(f"/api/pricing-regions/{self.row.pk}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Cannot delete the default pricing region")

    def test_string_default_flag_is_rejected(self):
        self.client.force_login(self.staff)
        response = self.post_json("/api/pricing-regions", {
            "code": "EU", "name": "Europe", "currency": "EUR", "countries": ["FR"], "isDefault": "false",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.assertFalse(PricingRegion.objects.filter(code="EU").exists())
        self.row.refresh_from_db()
        self.assertTrue(self.row.is_default)

    def test_overlong_currency_is_a_bad_request(self):
        self.client.force_login(self.staff)
        response = self.post_json("/api/pricing-regions", {"code": "EU", "name": "Europe", "currency": "EURO"})
        self.assertEqual(response.status_code, 400)

    def test_detail_not_found(self):
        response = self.client.get("/api/pricing-regions/9999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NOT_FOUND")

    def test_invalid_json(self):
        self.client.force_login(self.staff)
        response = self.client.post("/api/pricing-regions", data="{", content_type="application/json")
        self.assertEqual(response.status_code, 400)


class ProductPricesViewTests(TestCase):
    def setUp(self):
        self.staff = get_user_model().objects.create_user(username="staff", password="pw", is_staff=True)
        self.eu = create_region(code="EU", name="Europe", currency="EUR", countries=["FR"])
        self.product = Product.objects.create(name="Mug", slug="mug", price=Decimal("10.00"))

    def test_get_lists_every_region(self):
        response = self.client.get(f"/api/products/{self.product.pk}/prices")
        body = response.json()
        self.assertEqual(body["product"]["basePrice"], 10.0)
        self.assertEqual(body["regionalPrices"][0]["regionCode"], "EU")
        self.assertIsNone(body["regionalPrices"][0]["price"])

    def test_put_sets_override(self):
        self.client.force_login(self.staff)
        response = self.client.put(
            f"/api/products/{self.product.pk}/prices",
            data=json.dumps({"prices": [{"regionId": self.eu.pk, "price": 8.5}]}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertEqual(ProductRegionPrice.objects.get().price, Decimal("8.50"))

    def test_put_requires_prices_array(self):
        self.client.force_login(self.staff)
        response = self.client.put(
            f"/api/products/{self.product.pk}/prices", data=json.dumps({}), content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Prices array is required")
