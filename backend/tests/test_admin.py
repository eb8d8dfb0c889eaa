import pytest
from sqlalchemy.exc import OperationalError

import routes.stats as stats_routes
from conftest import PNG_BYTES, auth, grant_admin, login, signup


def place_order(client, headers, product_id, quantity=1):
    client.post("/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers)
    res = client.post(
        "/orders/checkout",
        data={"phone": "9876543210", "address": "221B Baker Street, Mumbai"},
        files={"payment_screenshot": ("pay.png", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()


# ---- access ----

@pytest.mark.parametrize("path", ["/admin/users", "/admin/stats", "/admin/orders", "/admin/banners", "/admin/logs"])
def test_console_is_admin_only(client, customer, path):
    assert client.get(path).status_code == 401
    res = client.get(path, headers=customer["headers"])
    assert res.status_code == 403
    assert res.json()["detail"] == "Admin access required"


def test_me_reports_admin_flag(client, admin, customer):
    assert client.get("/auth/me", headers=admin["headers"]).json()["is_admin"] is True
    me = client.get("/auth/me", headers=customer["headers"]).json()
    assert me["is_admin"] is False
    assert me["role"] == "customer"


# ---- users and roles ----

def test_user_listing_and_search(client, admin, customer):
    res = client.get("/admin/users", headers=admin["headers"]).json()
    assert res["total"] == 2
    roles = {u["email"]: u["role"] for u in res["items"]}
    assert roles == {"admin@example.com": "admin", "customer@example.com": "customer"}

    res = client.get("/admin/users", params={"q": "asha"}, headers=admin["headers"]).json()
    assert [u["email"] for u in res["items"]] == ["customer@example.com"]


def test_last_admin_cannot_be_demoted(client, admin, db):
    from models.users import UserRole

    before = sorted((r.user_id, r.role) for r in db.query(UserRole).all())
    res = client.put(f"/admin/users/{admin['id']}/role", json={"role": "customer"}, headers=admin["headers"])
    assert res.status_code == 409
    assert res.json()["detail"] == "Cannot remove the last administrator"
    assert client.get("/auth/me", headers=admin["headers"]).json()["is_admin"] is True
    assert sorted((r.user_id, r.role) for r in db.query(UserRole).all()) == before


def test_duplicate_admin_rows_count_as_one_admin(client, admin):
    grant_admin(admin["id"])
    res = client.put(f"/admin/users/{admin['id']}/role", json={"role": "customer"}, headers=admin["headers"])
    assert res.status_code == 409


def test_promote_then_demote_with_two_admins(client, admin, customer):
    res = client.put(f"/admin/users/{customer['id']}/role", json={"role": "admin"}, headers=admin["headers"])
    assert res.status_code == 200
    assert res.json()["role"] == "admin"
    assert client.get("/admin/stats", headers=customer["headers"]).status_code == 200

    res = client.put(f"/admin/users/{admin['id']}/role", json={"role": "customer"}, headers=admin["headers"])
    assert res.status_code == 200
    assert client.get("/admin/stats", headers=admin["headers"]).status_code == 403


def test_role_change_validation(client, admin, customer):
    res = client.put(f"/admin/users/{customer['id']}/role", json={"role": "owner"}, headers=admin["headers"])
    assert res.status_code == 422
    res = client.put("/admin/users/no-such-user/role", json={"role": "admin"}, headers=admin["headers"])
    assert res.status_code == 404


def test_deleted_user_session_is_revoked(client, admin, customer):
    res = client.delete(f"/admin/users/{customer['id']}", headers=admin["headers"])
    assert res.status_code == 200

    res = client.get("/auth/me", headers=customer["headers"])
    assert res.status_code == 401
    assert "deleted" in res.json()["detail"]

    # Signing in again is refused as well
    res = client.post("/auth/login", json={"email": "customer@example.com", "password": "secret123"})
    assert res.status_code == 401
    assert "deleted" in res.json()["detail"]


def test_admin_cannot_delete_self(client, admin):
    res = client.delete(f"/admin/users/{admin['id']}", headers=admin["headers"])
    assert res.status_code == 400


# ---- catalogue ----

def test_product_lifecycle(client, admin, catalog):
    res = client.post(
        "/admin/products",
        data={"name": "Ladle", "price": "120", "stock_quantity": "30", "category_id": str(catalog["tools"])},
        files={"file": ("ladle.png", PNG_BYTES, "image/png")},
        headers=admin["headers"],
    )
    assert res.status_code == 201, res.text
    product = res.json()
    assert "/storage/product-images/" in product["image_url"]

    res = client.patch(f"/admin/products/{product['id']}", data={"price": "99.5", "is_featured": "true"},
                       headers=admin["headers"])
    assert res.json()["price"] == 99.5
    assert res.json()["is_featured"] is True
    assert res.json()["name"] == "Ladle"

    assert client.delete(f"/admin/products/{product['id']}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/shop/products/{product['id']}").status_code == 404


def test_product_rejects_non_image_upload(client, admin):
    res = client.post(
        "/admin/products",
        data={"name": "Ladle", "price": "120", "stock_quantity": "30"},
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=admin["headers"],
    )
    assert res.status_code == 400


def test_product_image_extension_follows_content_type(client, admin):
    res = client.post(
        "/admin/products",
        data={"name": "Ladle", "price": "120", "stock_quantity": "30"},
        files={"file": ("ladle.html", PNG_BYTES, "image/png")},
        headers=admin["headers"],
    )
    assert res.status_code == 201, res.text
    assert res.json()["image_url"].endswith(".png")


def test_negative_price_is_rejected(client, admin):
    res = client.post("/admin/products", data={"name": "Bad", "price": "-1", "stock_quantity": "1"},
                      headers=admin["headers"])
    assert res.status_code == 422


def test_offer_replace_and_clear(client, admin, catalog):
    res = client.put(f"/admin/products/{catalog['cooker']}/offer", json={"discount_percentage": 25},
                     headers=admin["headers"])
    assert res.status_code == 200
    detail = client.get(f"/shop/products/{catalog['cooker']}").json()
    assert detail["discount_percentage"] == 25
    assert detail["discounted_price"] == 1800

    client.put(f"/admin/products/{catalog['cooker']}/offer", json={"discount_percentage": None},
               headers=admin["headers"])
    detail = client.get(f"/shop/products/{catalog['cooker']}").json()
    assert detail["discount_percentage"] is None
    assert detail["discounted_price"] == 2400


def test_duplicate_category_is_rejected(client, admin, catalog):
    res = client.post("/admin/categories", json={"name": "Cookware"}, headers=admin["headers"])
    assert res.status_code == 400


# ---- orders ----

def test_admin_order_management_and_receipt(client, admin, customer, catalog):
    order = place_order(client, customer["headers"], catalog["pan"], 2)

    orders = client.get("/admin/orders", headers=admin["headers"]).json()
    assert [o["id"] for o in orders] == [order["id"]]
    assert orders[0]["profile"] == {"full_name": "Asha Customer", "email": "customer@example.com"}

    res = client.patch(f"/admin/orders/{order['id']}/status", json={"status": "shipped"}, headers=admin["headers"])
    assert res.json()["order_status"] == "shipped"
    res = client.patch(f"/admin/orders/{order['id']}/payment-status", json={"status": "confirmed"},
                       headers=admin["headers"])
    assert res.json()["payment_status"] == "confirmed"

    mine = client.get("/orders", headers=customer["headers"]).json()
    assert mine[0]["order_status"] == "shipped"

    res = client.get(f"/admin/orders/{order['id']}/receipt", headers=admin["headers"])
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")


def test_export_all_orders_as_pdf(client, admin, customer, catalog, db):
    from models.log import Log

    place_order(client, customer["headers"], catalog["pan"], 2)
    place_order(client, customer["headers"], catalog["cooker"], 1)

    res = client.get("/admin/orders/export", headers=admin["headers"])
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert 'filename="all-orders-' in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")
    assert db.query(Log).filter(Log.action == "ORDERS_EXPORT").one().meta == {"count": 2}


def test_export_with_no_orders_and_for_customers(client, admin, customer):
    res = client.get("/admin/orders/export", headers=admin["headers"])
    assert res.status_code == 200
    assert res.content.startswith(b"%PDF")

    assert client.get("/admin/orders/export", headers=customer["headers"]).status_code == 403


def test_unknown_order_status_is_rejected(client, admin, customer, catalog):
    order = place_order(client, customer["headers"], catalog["pan"])
    res = client.patch(f"/admin/orders/{order['id']}/status", json={"status": "lost"}, headers=admin["headers"])
    assert res.status_code == 422
    assert client.patch("/admin/orders/999/status", json={"status": "shipped"},
                        headers=admin["headers"]).status_code == 404


# ---- dashboard ----

def test_dashboard_stats(client, admin, customer, catalog):
    first = place_order(client, customer["headers"], catalog["pan"], 2)   # 1400
    place_order(client, customer["headers"], catalog["cooker"], 1)       # 2600
    client.patch(f"/admin/orders/{first['id']}/payment-status", json={"status": "confirmed"},
                 headers=admin["headers"])
    client.patch(f"/admin/orders/{first['id']}/status", json={"status": "confirmed"},
                 headers=admin["headers"])

    stats = client.get("/admin/stats", headers=admin["headers"]).json()
    assert stats == {
        "total_products": 3,
        "low_stock": 2,
        "total_orders": 2,
        "pending_orders": 1,
        "revenue": 1400.0,
    }


def test_dashboard_read_failure_reports_zeros(client, admin, monkeypatch):
    def broken(db):
        raise OperationalError("SELECT count(*)", {}, Exception("database is locked"))

    monkeypatch.setattr(stats_routes, "collect_stats", broken)
    res = client.get("/admin/stats", headers=admin["headers"])
    assert res.status_code == 200
    assert res.json() == {"total_products": 0, "low_stock": 0, "total_orders": 0,
                          "pending_orders": 0, "revenue": 0.0}


# ---- banners ----

def test_banner_management(client, admin):
    created = []
    for order in range(4):
        res = client.post("/admin/banners", json={
            "title": f"Banner {order}", "image_url": f"https://cdn.example.com/{order}.png",
            "display_order": 3 - order,
        }, headers=admin["headers"])
        assert res.status_code == 201
        created.append(res.json())

    listed = client.get("/admin/banners", headers=admin["headers"]).json()
    assert [b["title"] for b in listed] == ["Banner 3", "Banner 2", "Banner 1", "Banner 0"]

    res = client.post(f"/admin/banners/{created[3]['id']}/toggle", headers=admin["headers"])
    assert res.json()["is_active"] is False
    assert [b["title"] for b in client.get("/shop/banners").json()] == ["Banner 2", "Banner 1", "Banner 0"]

    res = client.patch(f"/admin/banners/{created[0]['id']}", json={"title": "Monsoon Sale"}, headers=admin["headers"])
    assert res.json()["title"] == "Monsoon Sale"
    assert client.patch(f"/admin/banners/{created[0]['id']}", json={"title": " "},
                        headers=admin["headers"]).status_code == 400

    assert client.delete(f"/admin/banners/{created[1]['id']}", headers=admin["headers"]).status_code == 204
    assert len(client.get("/admin/banners", headers=admin["headers"]).json()) == 3


# ---- audit log ----

def test_audit_log_records_logins(client, admin):
    signup(client, "someone@example.com")
    client.post("/auth/login", json={"email": "someone@example.com", "password": "wrong-password"})
    login(client, "someone@example.com")

    res = client.get("/admin/logs", params={"action": "LOGIN"}, headers=admin["headers"]).json()
    statuses = [item["status"] for item in res["items"]]
    assert "FAIL" in statuses
    assert statuses.count("SUCCESS") == 2

    res = client.get("/admin/logs", params={"action": "LOGIN", "status": "FAIL"}, headers=admin["headers"]).json()
    assert res["total"] == 1
    assert res["items"][0]["meta"]["email"] == "someone@example.com"
