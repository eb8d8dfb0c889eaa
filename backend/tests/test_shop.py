from models.banner import Banner
from models.product import Offer


def test_categories_in_display_order(client, catalog):
    names = [c["name"] for c in client.get("/shop/categories").json()]
    assert names == ["Kitchen Tools", "Cookware"]


def test_products_carry_active_discount(client, catalog):
    products = {p["name"]: p for p in client.get("/shop/products").json()}
    assert products["Frying Pan"]["discount_percentage"] == 10
    assert products["Frying Pan"]["discounted_price"] == 540
    assert products["Pressure Cooker"]["discount_percentage"] is None
    assert products["Pressure Cooker"]["discounted_price"] == 2400


def test_search_and_category_filter(client, catalog):
    assert [p["name"] for p in client.get("/shop/products", params={"search": "pan"}).json()] == ["Frying Pan"]
    in_tools = client.get("/shop/products", params={"category": catalog["tools"]}).json()
    assert [p["name"] for p in in_tools] == ["Chef Knife"]


def test_featured_products(client, catalog):
    names = {p["name"] for p in client.get("/shop/featured").json()}
    assert names == {"Frying Pan", "Chef Knife"}


def test_product_detail(client, catalog):
    detail = client.get(f"/shop/products/{catalog['pan']}").json()
    assert detail["category_name"] == "Cookware"
    assert detail["discounted_price"] == 540
    assert client.get("/shop/products/424242").status_code == 404


def test_first_active_offer_wins(client, catalog, db):
    db.add(Offer(product_id=catalog["pan"], discount_percentage=50, is_active=True))
    db.add(Offer(product_id=catalog["cooker"], discount_percentage=30, is_active=False))
    db.commit()

    assert client.get(f"/shop/products/{catalog['pan']}").json()["discount_percentage"] == 10
    assert client.get(f"/shop/products/{catalog['cooker']}").json()["discount_percentage"] is None


def test_only_active_banners_are_shown(client, catalog, db):
    db.add(Banner(title="Hidden", image_url="https://cdn.example.com/h.png", is_active=False))
    db.commit()
    assert [b["title"] for b in client.get("/shop/banners").json()] == ["Sale"]


def test_uploaded_files_are_served(client, admin):
    from conftest import PNG_BYTES

    res = client.post(
        "/admin/products",
        data={"name": "Whisk", "price": "80", "stock_quantity": "12"},
        files={"file": ("whisk.png", PNG_BYTES, "image/png")},
        headers=admin["headers"],
    )
    path = res.json()["image_url"].split("://", 1)[1].split("/", 1)[1]
    served = client.get(f"/{path}")
    assert served.status_code == 200
    assert served.content == PNG_BYTES
