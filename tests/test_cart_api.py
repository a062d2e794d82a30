import unittest

from fastapi.testclient import TestClient
from fakes import FakeCartRepo, FakeResolver

from storefront.main import create_app
from storefront.routers.carts import get_cart_actions
from storefront.schemas.principal import Principal
from storefront.services.cart_actions import CartActions

ALICE = Principal(uid="alice")

NEW_ITEM = {"product_id": "p1", "product_name": "Shirt", "product_price": 19.9, "variant": "M", "quantity": 2}


class CartApiTests(unittest.TestCase):
    def setUp(self):
        self.repo = FakeCartRepo()
        self.resolver = FakeResolver(ALICE)
        self.app = create_app()
        self.app.state.session_resolver = self.resolver
        self.app.dependency_overrides[get_cart_actions] = lambda: CartActions(self.repo, max_attempts=3)
        self.client = TestClient(self.app)

    def test_anonymous_gets_401_envelope(self):
        self.resolver.principal = None

        resp = self.client.get("/api/cart")

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"success": False, "error": "Not authenticated"})

    def test_add_then_list(self):
        first = self.client.post("/api/cart/items", json=NEW_ITEM)
        second = self.client.post("/api/cart/items", json={**NEW_ITEM, "quantity": 3})

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.json()["item"]["quantity"], 5)

        items = self.client.get("/api/cart").json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["quantity"], 5)
        self.assertEqual(items[0]["variant"], "M")

    def test_zero_quantity_is_422_envelope(self):
        resp = self.client.post("/api/cart/items", json={**NEW_ITEM, "quantity": 0})

        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["success"], False)
        self.assertEqual(self.repo.rows, {})

    def test_product_id_whitespace_is_stripped(self):
        resp = self.client.post("/api/cart/items", json={**NEW_ITEM, "product_id": "\u200b p1 "})

        self.assertEqual(resp.json()["item"]["product_id"], "p1")

    def test_list_merges_duplicates_and_repairs_after_response(self):
        self.repo.seed("alice", "p1", "M", quantity=1)
        self.repo.seed("alice", "p1", "M", quantity=2)
        self.repo.seed("alice", "p2", quantity=1)

        resp = self.client.get("/api/cart")

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual([(i["product_id"], i["quantity"]) for i in body["items"]], [("p1", 3), ("p2", 1)])
        # TestClient runs background tasks before returning
        self.assertEqual(len(self.repo.user_rows("alice")), 2)
        self.assertIn("apply_repair", self.repo.call_names())

    def test_repair_failure_still_returns_merged_cart(self):
        self.repo.fail_repair = True
        self.repo.seed("alice", "p1", quantity=1)
        self.repo.seed("alice", "p1", quantity=1)

        resp = self.client.get("/api/cart")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["items"][0]["quantity"], 2)

    def test_store_failure_is_500_envelope(self):
        self.repo.fail_reads = True

        resp = self.client.get("/api/cart")

        self.assertEqual(resp.status_code, 500)
        self.assertFalse(resp.json()["success"])
        self.assertNotIn("error_kind", resp.json())

    def test_patch_foreign_item_reports_zero_updates(self):
        row = self.repo.seed("bob", "p1", quantity=1)

        resp = self.client.patch(f"/api/cart/items/{row['id']}", json={"quantity": 4})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True, "updated": 0})
        self.assertEqual(self.repo.rows[row["id"]]["quantity"], 1)

    def test_patch_own_item(self):
        row = self.repo.seed("alice", "p1", quantity=1)

        resp = self.client.patch(f"/api/cart/items/{row['id']}", json={"quantity": 4})

        self.assertEqual(resp.json(), {"success": True, "updated": 1})

    def test_patch_below_one_is_422(self):
        row = self.repo.seed("alice", "p1", quantity=1)

        resp = self.client.patch(f"/api/cart/items/{row['id']}", json={"quantity": 0})

        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["error"], "Quantity must be at least 1")

    def test_delete_item_twice(self):
        row = self.repo.seed("alice", "p1")

        self.assertEqual(self.client.delete(f"/api/cart/items/{row['id']}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/cart/items/{row['id']}").status_code, 200)

    def test_clear_cart(self):
        self.repo.seed("alice", "p1")
        self.repo.seed("alice", "p2")

        resp = self.client.delete("/api/cart")

        self.assertEqual(resp.json(), {"success": True, "removed": 2})


if __name__ == "__main__":
    unittest.main()
