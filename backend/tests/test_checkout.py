import os
from types import SimpleNamespace
from urllib.parse import urlparse

import pytest

from conftest import PNG_BYTES
from config import settings
from main import app
from models.order import Order
from services.cart import CartLine
from services.checkout import CheckoutForm, CheckoutOrchestrator, UploadedFile, validate_checkout_form
from services.errors import CheckoutError, StorageError
from utils.dependencies import get_storage
from utils.storage import ObjectStorage

VALID_FORM = {"phone": "+919876543210", "address": "12 MG Road, Pune 411001"}


def screenshot(content=PNG_BYTES, content_type="image/png", name="pay.png"):
    return {"payment_screenshot": (name, content, content_type)}


def fill_cart(client, headers, product_id, quantity):
    res = client.post("/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers)
    assert res.status_code == 200, res.text


def checkout(client, headers, form=None, files=None):
    return client.post("/orders/checkout", data=form or VALID_FORM, files=files, headers=headers)


# ---- form validation ----

@pytest.mark.parametrize("phone, message", [
    ("", "Phone number required"),
    ("98765", "Phone number required"),
    ("0123456789", "Please enter a valid phone number"),
    ("98765-43210", "Please enter a valid phone number"),
])
def test_phone_validation(phone, message):
    form = CheckoutForm(phone=phone, address=VALID_FORM["address"],
                        payment_screenshot=UploadedFile("a.png", "image/png", PNG_BYTES))
    assert validate_checkout_form(form) == {"phone": message}


def test_address_validation():
    base = dict(phone="9876543210", payment_screenshot=UploadedFile("a.png", "image/png", PNG_BYTES))
    assert validate_checkout_form(CheckoutForm(address="   Pune   ", **base)) == {"address": "Address is required"}
    assert validate_checkout_form(CheckoutForm(address="a b c d e f g", **base)) == {
        "address": "Address must contain meaningful content"
    }


def test_screenshot_validation():
    form = CheckoutForm(phone="9876543210", address=VALID_FORM["address"])
    assert validate_checkout_form(form) == {"payment_screenshot": "Payment screenshot is required"}

    form.payment_screenshot = UploadedFile("a.txt", "text/plain", b"hello")
    assert validate_checkout_form(form) == {"payment_screenshot": "Payment screenshot must be an image"}

    form.payment_screenshot = UploadedFile("a.png", "image/png", b"x" * 2048)
    assert "payment_screenshot" in validate_checkout_form(form, max_upload_bytes=1024)


# ---- API flow ----

def test_checkout_requires_login(client, catalog):
    res = checkout(client, {}, files=screenshot())
    assert res.status_code == 401
    assert res.json()["detail"] == "Please login to place an order"


def test_empty_cart_is_rejected_before_upload(client, customer):
    res = checkout(client, customer["headers"], files=screenshot())
    assert res.status_code == 400
    assert res.json()["detail"] == "Your cart is empty"
    bucket = os.path.join(settings.STORAGE_DIR, "payment-screenshots")
    assert not os.path.isdir(bucket) or not any(
        f.startswith(customer["id"]) for f in os.listdir(bucket)
    )


def test_invalid_form_reports_every_field(client, customer, catalog):
    fill_cart(client, customer["headers"], catalog["pan"], 1)
    res = checkout(client, customer["headers"], form={"phone": "123", "address": "x"})

    assert res.status_code == 422
    errors = res.json()["errors"]
    assert set(errors) == {"phone", "address", "payment_screenshot"}

    # Nothing was placed and the cart is untouched
    assert client.get("/orders", headers=customer["headers"]).json() == []
    assert len(client.get("/cart", headers=customer["headers"]).json()["items"]) == 1


def test_successful_checkout_snapshots_cart_into_order(client, customer, catalog):
    fill_cart(client, customer["headers"], catalog["pan"], 2)

    res = checkout(client, customer["headers"], files=screenshot())
    assert res.status_code == 201, res.text
    order = res.json()

    # 2 x 600 at list price, plus the 1000-5000 tier delivery charge
    assert order["total_amount"] == 1400
    assert order["payment_method"] == "bank_transfer"
    assert order["payment_status"] == "pending"
    assert order["order_status"] == "pending"
    assert order["phone"] == VALID_FORM["phone"]
    assert order["shipping_address"] == VALID_FORM["address"]
    assert order["items"] == [{
        "product_id": catalog["pan"], "product_name": "Frying Pan",
        "quantity": 2, "unit_price": 600.0, "subtotal": 1200.0,
    }]

    url = order["transaction_screenshot_url"]
    assert f"/storage/payment-screenshots/{customer['id']}-" in url
    assert url.endswith(".png")
    key = url.rsplit("/", 1)[1]
    with open(os.path.join(settings.STORAGE_DIR, "payment-screenshots", key), "rb") as fh:
        assert fh.read() == PNG_BYTES

    cart = client.get("/cart", headers=customer["headers"]).json()
    assert cart["items"] == []


def test_order_items_keep_their_snapshot(client, customer, catalog, db):
    from models.product import Product

    fill_cart(client, customer["headers"], catalog["cooker"], 1)
    checkout(client, customer["headers"], files=screenshot())

    cooker = db.get(Product, catalog["cooker"])
    cooker.name = "Renamed Cooker"
    cooker.price = 1.0
    db.commit()

    orders = client.get("/orders", headers=customer["headers"]).json()
    assert orders[0]["items"][0]["product_name"] == "Pressure Cooker"
    assert orders[0]["items"][0]["unit_price"] == 2400
    assert orders[0]["total_amount"] == 2600


def test_orders_are_listed_newest_first(client, customer, catalog):
    fill_cart(client, customer["headers"], catalog["pan"], 1)
    first = checkout(client, customer["headers"], files=screenshot()).json()
    fill_cart(client, customer["headers"], catalog["cooker"], 1)
    second = checkout(client, customer["headers"], files=screenshot(name="again.jpg", content_type="image/jpeg")).json()

    ids = [o["id"] for o in client.get("/orders", headers=customer["headers"]).json()]
    assert ids == [second["id"], first["id"]]


def test_order_total_matches_its_items_for_sub_cent_prices(client, customer, db):
    from models.product import Product

    washers = [Product(name=f"Washer {n}", price=0.125, stock_quantity=10) for n in range(2)]
    db.add_all(washers)
    db.commit()
    for product in washers:
        fill_cart(client, customer["headers"], product.id, 1)

    cart = client.get("/cart", headers=customer["headers"]).json()
    assert cart["subtotal"] == sum(i["line_total"] for i in cart["items"])

    order = checkout(client, customer["headers"], files=screenshot()).json()
    items_total = sum(i["subtotal"] for i in order["items"])
    assert items_total == 0.24
    assert order["total_amount"] == round(items_total + 150, 2)


def test_screenshot_is_stored_under_its_declared_image_type(client, customer, catalog):
    fill_cart(client, customer["headers"], catalog["pan"], 1)
    payload = b"<script>alert(1)</script>"
    res = checkout(client, customer["headers"], files=screenshot(content=payload, name="x.html"))
    assert res.status_code == 201, res.text

    url = res.json()["transaction_screenshot_url"]
    assert url.endswith(".png")
    served = client.get(urlparse(url).path)
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/png"


class BrokenStorage(ObjectStorage):
    def upload(self, bucket, path, data):
        raise StorageError("bucket unavailable")


def test_upload_failure_places_nothing(client, customer, catalog):
    fill_cart(client, customer["headers"], catalog["pan"], 1)
    app.dependency_overrides[get_storage] = lambda: BrokenStorage()
    try:
        res = checkout(client, customer["headers"], files=screenshot())
    finally:
        app.dependency_overrides.pop(get_storage, None)

    assert res.status_code == 400
    assert res.json()["detail"] == "Failed to upload payment screenshot"
    assert client.get("/orders", headers=customer["headers"]).json() == []
    assert len(client.get("/cart", headers=customer["headers"]).json()["items"]) == 1


# ---- orchestrator ----

def test_upload_key_uses_user_and_clock(db, tmp_path):
    storage = ObjectStorage(root=tmp_path, base_url="http://shop.example.com")
    cart = SimpleNamespace(user_id="ghost-user", items=[], reload=lambda: [])
    orchestrator = CheckoutOrchestrator(db, cart, storage, clock=lambda: 1700000000.123)

    key = orchestrator._upload_screenshot("u-1", UploadedFile("receipt.JPG", "image/jpeg", PNG_BYTES))
    assert key == "u-1-1700000000123.jpg"
    assert (tmp_path / "payment-screenshots" / key).exists()


def test_failed_order_write_rolls_back_and_leaves_upload(db, tmp_path, catalog):
    storage = ObjectStorage(root=tmp_path, base_url="http://shop.example.com")
    line = CartLine(id=1, product_id=catalog["pan"], quantity=1, name="Frying Pan",
                    price=600.0, image_url=None, stock_quantity=10)
    # No such identity: the orders foreign key rejects the insert
    cart = SimpleNamespace(user_id="missing-user", items=[line], reload=lambda: [line])
    orchestrator = CheckoutOrchestrator(db, cart, storage, clock=lambda: 1.0)

    form = CheckoutForm(phone="9876543210", address=VALID_FORM["address"],
                        payment_screenshot=UploadedFile("p.png", "image/png", PNG_BYTES))
    with pytest.raises(CheckoutError):
        orchestrator.place_order(form)

    assert db.query(Order).count() == 0
    assert (tmp_path / "payment-screenshots" / "missing-user-1000.png").exists()
