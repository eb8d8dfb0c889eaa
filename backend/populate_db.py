import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from dotenv import load_dotenv

load_dotenv()

# Database models and setup
from database import SessionLocal, init_db
from models.banner import Banner
from models.product import Category, Offer, Product
from models.users import AuthUser
from services.errors import EmailTakenError
from services.roles import ADMIN, change_role
from utils.auth_provider import LocalAuthProvider, normalize_email

# Configuration
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "change-me-now")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Store Admin")
IMAGE_BASE = "https://picsum.photos/seed"
# End Configuration

CATEGORIES = [
    ("Cookware", "Pots, pans and pressure cookers"),
    ("Kitchen Tools", "Knives, ladles and everyday utensils"),
    ("Storage", "Containers, jars and lunch boxes"),
    ("Appliances", "Mixers, kettles and induction cooktops"),
]

# (name, category, price, stock, featured, discount %)
PRODUCTS = [
    ("Non-stick Frying Pan 24cm", "Cookware", 899.0, 40, True, 10),
    ("Stainless Steel Pressure Cooker 5L", "Cookware", 2499.0, 15, True, None),
    ("Cast Iron Kadai", "Cookware", 1299.0, 6, False, None),
    ("Chef Knife 8 inch", "Kitchen Tools", 749.0, 25, True, 15),
    ("Silicone Spatula Set", "Kitchen Tools", 349.0, 60, False, None),
    ("Wooden Chopping Board", "Kitchen Tools", 499.0, 8, False, None),
    ("Glass Storage Jar Set (3)", "Storage", 649.0, 30, True, None),
    ("Steel Lunch Box 3-tier", "Storage", 599.0, 3, False, 5),
    ("Mixer Grinder 750W", "Appliances", 3899.0, 12, True, 20),
    ("Electric Kettle 1.5L", "Appliances", 1199.0, 0, False, None),
]

BANNERS = [
    ("Festive Cookware Sale", "Up to 20% off on selected cookware", "/products?category=Cookware", 0),
    ("New Arrivals", "Fresh picks for your kitchen", "/products", 1),
    ("Free delivery on big orders", "Flat delivery charges on every order", "/cart", 2),
]


def _image(seed: str) -> str:
    return f"{IMAGE_BASE}/{seed.lower().replace(' ', '-')}/400/400"


def seed_catalog(session):
    """Insert categories, products, offers and banners unless a catalog already exists."""
    if session.query(Product).count():
        print("Catalog already populated, skipping.")
        return

    category_ids = {}
    for order, (name, description) in enumerate(CATEGORIES):
        category = Category(name=name, description=description, image_url=_image(name), display_order=order)
        session.add(category)
        session.flush()
        category_ids[name] = category.id

    print(f"Inserting {len(PRODUCTS)} products...")
    for name, category, price, stock, featured, discount in PRODUCTS:
        product = Product(
            name=name,
            description=f"{name} from our {category.lower()} range.",
            price=price,
            stock_quantity=stock,
            category_id=category_ids[category],
            image_url=_image(name),
            is_featured=featured,
        )
        session.add(product)
        session.flush()
        if discount is not None:
            session.add(Offer(product_id=product.id, discount_percentage=discount, is_active=True))

    for title, description, link, order in BANNERS:
        session.add(Banner(
            title=title,
            description=description,
            image_url=_image(title),
            link_url=link,
            is_active=True,
            display_order=order,
        ))

    session.commit()
    print("Catalog inserted.")


def bootstrap_admin(session):
    """Make sure at least one administrator exists."""
    provider = LocalAuthProvider(session)
    user = session.query(AuthUser).filter(AuthUser.email == normalize_email(ADMIN_EMAIL)).first()
    if user is None:
        try:
            user = provider.sign_up(ADMIN_EMAIL, ADMIN_PASSWORD, {"full_name": ADMIN_NAME})
        except EmailTakenError:
            user = session.query(AuthUser).filter(AuthUser.email == normalize_email(ADMIN_EMAIL)).first()
    change_role(session, user.id, ADMIN)
    print(f"Administrator ready: {user.email}")


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        bootstrap_admin(session)
        seed_catalog(session)
    finally:
        session.close()


if __name__ == "__main__":
    populate_database()
