import os
import tempfile

# Settings are read at import time; point them at throwaway resources first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="storefront-storage-")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from models.banner import Banner
from models.product import Category, Offer, Product
from models.users import UserRole

PASSWORD = "secret123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def signup(client, email, full_name="Test User", password=PASSWORD, phone=None):
    res = client.post("/auth/signup", json={
        "email": email, "password": password, "full_name": full_name, "phone": phone,
    })
    assert res.status_code == 201, res.text
    return res.json()


def login(client, email, password=PASSWORD):
    res = client.post("/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["access_token"]


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def grant_admin(user_id):
    session = SessionLocal()
    try:
        session.add(UserRole(user_id=user_id, role="admin"))
        session.commit()
    finally:
        session.close()


@pytest.fixture
def customer(client):
    user = signup(client, "customer@example.com", full_name="Asha Customer")
    return {"id": user["id"], "headers": auth(login(client, "customer@example.com"))}


@pytest.fixture
def admin(client):
    user = signup(client, "admin@example.com", full_name="Store Admin")
    grant_admin(user["id"])
    return {"id": user["id"], "headers": auth(login(client, "admin@example.com"))}


@pytest.fixture
def catalog(db):
    """Two categories, a handful of products and one active offer."""
    cookware = Category(name="Cookware", display_order=1)
    tools = Category(name="Kitchen Tools", display_order=0)
    db.add_all([cookware, tools])
    db.flush()

    pan = Product(name="Frying Pan", price=600.0, stock_quantity=10, category_id=cookware.id, is_featured=True)
    cooker = Product(name="Pressure Cooker", price=2400.0, stock_quantity=5, category_id=cookware.id)
    knife = Product(name="Chef Knife", price=300.0, stock_quantity=0, category_id=tools.id, is_featured=True)
    db.add_all([pan, cooker, knife])
    db.flush()
    db.add(Offer(product_id=pan.id, discount_percentage=10, is_active=True))
    db.add(Banner(title="Sale", image_url="https://cdn.example.com/sale.png", display_order=0))
    db.commit()
    return {"pan": pan.id, "cooker": cooker.id, "knife": knife.id,
            "cookware": cookware.id, "tools": tools.id}
