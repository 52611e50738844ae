import tempfile
import unittest
from pathlib import Path

import jwt
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.config import Settings
from storefront.db import Base, InMemoryDbClient, SqlDbClient

SECRET = "test-secret-that-is-long-enough-for-hs256-keys"
SEED_FILE = Path(__file__).resolve().parents[2] / "data" / "seed.json"


def _settings(**overrides) -> Settings:
    values = {
        "use_in_memory_backends": True,
        "jwt_secret": SECRET,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(**values)


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.client = TestClient(create_app(_settings(), db=self.db))

    def add_category(self, name="Clothes"):
        response = self.client.post("/api/v1/categories", json={"name": name})
        self.assertEqual(response.status_code, 201)
        return response.json()

    def add_product(self, **fields):
        payload = {"title": "Shirt", "price": 10}
        payload.update(fields)
        response = self.client.post("/api/v1/products", json=payload)
        self.assertEqual(response.status_code, 201)
        return response.json()

    def add_user(self, email="admin@mail.com", password="123", role="admin"):
        response = self.client.post(
            "/api/v1/users",
            json={"name": "Admin", "email": email, "password": password, "role": role},
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_health(self):
        response = self.client.get("/api/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_add_product_coerces_category_and_embeds_it(self):
        category = self.add_category()
        product = self.add_product(categoryId=int(category["id"]))
        self.assertEqual(product["categoryId"], category["id"])
        self.assertEqual(product["category"]["name"], "Clothes")

        response = self.client.get(f"/api/v1/products/{product['id']}/category")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], category["id"])

    def test_product_with_dangling_category(self):
        product = self.add_product(categoryId="999999")
        self.assertIsNone(product["category"])
        response = self.client.get(f"/api/v1/products/{product['id']}/category")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json())

    def test_list_products_filters_and_paginates(self):
        clothes = self.add_category("Clothes")
        self.add_product(title="Linen Shirt", price=35, categoryId=clothes["id"])
        self.add_product(title="Headphones", price=120)
        self.add_product(title="T-Shirt", price=12, categoryId=clothes["id"])

        response = self.client.get(
            "/api/v1/products", params={"categoryId": clothes["id"], "title": "SHIRT"}
        )
        self.assertEqual(
            [p["title"] for p in response.json()], ["Linen Shirt", "T-Shirt"]
        )

        response = self.client.get(
            "/api/v1/products", params={"price_min": 12, "price_max": 35}
        )
        self.assertEqual(len(response.json()), 2)

        response = self.client.get("/api/v1/products", params={"limit": 1, "offset": 1})
        self.assertEqual([p["title"] for p in response.json()], ["Headphones"])

        response = self.client.get("/api/v1/products", params={"limit": 1})
        self.assertEqual(len(response.json()), 3)

        response = self.client.get("/api/v1/products", params={"limit": 0, "offset": 0})
        self.assertEqual(response.json(), [])

    def test_malformed_filters_degrade_to_empty(self):
        self.add_product()
        response = self.client.get("/api/v1/products", params={"price_min": "abc"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

        response = self.client.get("/api/v1/products", params={"categoryId": "abc"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_blank_category_filter_is_ignored(self):
        product = self.add_product()
        response = self.client.get("/api/v1/products", params={"categoryId": " "})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["id"] for p in response.json()], [product["id"]])

    def test_update_product_preserves_other_fields(self):
        product = self.add_product(description="Linen", images=["a.png"])
        response = self.client.put(
            f"/api/v1/products/{product['id']}", json={"price": 99}
        )
        self.assertEqual(response.status_code, 200)
        updated = response.json()
        self.assertEqual(updated["price"], 99)
        self.assertEqual(updated["title"], "Shirt")
        self.assertEqual(updated["description"], "Linen")
        self.assertEqual(updated["images"], ["a.png"])

    def test_update_missing_product_is_404(self):
        response = self.client.put("/api/v1/products/999999", json={"price": 99})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Product not found")

    def test_get_missing_records_is_404(self):
        for path in ("products", "categories", "users"):
            with self.subTest(path=path):
                response = self.client.get(f"/api/v1/{path}/999999")
                self.assertEqual(response.status_code, 404)

    def test_delete_category_twice(self):
        category = self.add_category()
        for _ in range(2):
            response = self.client.delete(f"/api/v1/categories/{category['id']}")
            self.assertEqual(response.status_code, 200)
            self.assertIs(response.json(), True)
        self.assertEqual(self.client.get("/api/v1/categories").json(), [])

    def test_banners_crud(self):
        response = self.client.post(
            "/api/v1/banners", json={"image": "sale.png", "title": "Sale"}
        )
        self.assertEqual(response.status_code, 201)
        banner = response.json()

        response = self.client.put(
            f"/api/v1/banners/{banner['id']}", json={"title": "Big sale"}
        )
        self.assertEqual(response.json()["image"], "sale.png")
        self.assertEqual(response.json()["title"], "Big sale")

        self.assertEqual(len(self.client.get("/api/v1/banners").json()), 1)
        self.assertIs(
            self.client.delete(f"/api/v1/banners/{banner['id']}").json(), True
        )
        self.assertEqual(self.client.get("/api/v1/banners").json(), [])

    def test_users_never_expose_passwords(self):
        user = self.add_user()
        self.assertNotIn("password", user)
        self.assertNotIn("password_hash", user)
        listed = self.client.get("/api/v1/users").json()
        self.assertEqual([u["email"] for u in listed], ["admin@mail.com"])
        self.assertNotIn("password_hash", listed[0])

    def test_email_availability(self):
        response = self.client.post(
            "/api/v1/users/is-available", json={"email": "new@mail.com"}
        )
        self.assertEqual(response.json(), {"isAvailable": True})

        self.add_user(email="new@mail.com", role="customer")
        response = self.client.post(
            "/api/v1/users/is-available", json={"email": "new@mail.com"}
        )
        self.assertEqual(response.json(), {"isAvailable": False})

    def test_invalid_role_is_rejected(self):
        response = self.client.post(
            "/api/v1/users",
            json={"name": "X", "email": "x@mail.com", "password": "1", "role": "root"},
        )
        self.assertEqual(response.status_code, 422)

    def test_login_refresh_and_profile(self):
        user = self.add_user()
        response = self.client.post(
            "/api/v1/auth/login", json={"email": "admin@mail.com", "password": "123"}
        )
        self.assertEqual(response.status_code, 200)
        tokens = response.json()
        claims = jwt.decode(tokens["access_token"], SECRET, algorithms=["HS256"])
        self.assertEqual(claims["sub"], user["id"])
        self.assertEqual(claims["role"], "admin")

        response = self.client.post(
            "/api/v1/auth/refresh-token",
            json={"refreshToken": tokens["refresh_token"]},
        )
        self.assertEqual(response.status_code, 200)
        renewed = response.json()

        response = self.client.get(
            "/api/v1/auth/profile",
            headers={"Authorization": f"Bearer {renewed['access_token']}"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "admin@mail.com")

    def test_profile_is_derived_from_token_not_first_user(self):
        self.add_user(email="admin@mail.com")
        customer = self.add_user(email="customer@mail.com", password="abc", role="customer")
        tokens = self.client.post(
            "/api/v1/auth/login",
            json={"email": "customer@mail.com", "password": "abc"},
        ).json()
        response = self.client.get(
            "/api/v1/auth/profile",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        self.assertEqual(response.json()["id"], customer["id"])

    def test_profile_requires_token(self):
        self.add_user()
        response = self.client.get("/api/v1/auth/profile")
        self.assertEqual(response.status_code, 401)

        response = self.client.get(
            "/api/v1/auth/profile", headers={"Authorization": "Bearer garbage"}
        )
        self.assertEqual(response.status_code, 401)

    def test_login_wrong_password_is_401(self):
        self.add_user()
        response = self.client.post(
            "/api/v1/auth/login", json={"email": "admin@mail.com", "password": "wrong"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid credentials")

    def test_refresh_with_tampered_token_is_401(self):
        response = self.client.post(
            "/api/v1/auth/refresh-token", json={"refreshToken": "a.b.c"}
        )
        self.assertEqual(response.status_code, 401)

    def test_refresh_for_deleted_user_is_404(self):
        user = self.add_user()
        tokens = self.client.post(
            "/api/v1/auth/login", json={"email": "admin@mail.com", "password": "123"}
        ).json()
        self.client.delete(f"/api/v1/users/{user['id']}")
        response = self.client.post(
            "/api/v1/auth/refresh-token",
            json={"refreshToken": tokens["refresh_token"]},
        )
        self.assertEqual(response.status_code, 404)


class SeededApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(
            create_app(_settings(seed_file=str(SEED_FILE)), db=InMemoryDbClient())
        )

    def test_seeded_admin_can_log_in(self):
        response = self.client.post(
            "/api/v1/auth/login", json={"email": "admin@mail.com", "password": "123"}
        )
        self.assertEqual(response.status_code, 200)
        claims = jwt.decode(
            response.json()["access_token"], SECRET, algorithms=["HS256"]
        )
        self.assertEqual(claims["sub"], "1")
        self.assertEqual(claims["role"], "admin")

    def test_seeded_products_resolve_categories(self):
        response = self.client.get("/api/v1/products", params={"categoryId": 2})
        products = response.json()
        self.assertEqual([p["title"] for p in products], ["Wireless Headphones"])
        self.assertEqual(products[0]["category"]["name"], "Electronics")


class StorageFailureApiTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.db = SqlDbClient(f"sqlite+pysqlite:///{tmp.name}/store.db")
        self.addCleanup(self.db.engine.dispose)
        self.client = TestClient(create_app(_settings(), db=self.db))

    def test_backend_failure_is_503(self):
        Base.metadata.drop_all(self.db.engine)
        with self.assertLogs("storefront.db", "ERROR"):
            response = self.client.get("/api/v1/products")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"detail": "Storage backend unavailable"})


if __name__ == "__main__":
    unittest.main()
