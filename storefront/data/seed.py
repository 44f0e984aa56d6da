# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal, init_db
from storefront.data.models.product import ProductModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {
        "name": "Premium Arabic Coffee Beans",
        "slug": "premium-arabic-coffee-beans",
        "category": "Coffee",
        "brand": "Alshami",
        "description": "Premium quality Arabic coffee beans with a rich aroma and bold flavor.",
        "image": "/images/img1.jpg",
        "stock": 50,
        "price": "29.99",
    },
    {
        "name": "Organic Green Cardamom",
        "slug": "organic-green-cardamom",
        "category": "Spices",
        "brand": "Alshami",
        "description": "Organic green cardamom pods for coffee, tea and traditional dishes.",
        "image": "/images/img2.jpg",
        "stock": 100,
        "price": "15.99",
    },
    {
        "name": "Traditional Saffron Threads",
        "slug": "traditional-saffron-threads",
        "category": "Spices",
        "brand": "Alshami Premium",
        "description": "Pure saffron threads handpicked from the best harvests.",
        "image": "/images/img3.jpg",
        "stock": 30,
        "price": "49.99",
    },
    {
        "name": "Turkish Coffee - Dark Roast",
        "slug": "turkish-coffee-dark-roast",
        "category": "Coffee",
        "brand": "Alshami",
        "description": "Finely ground dark roast Turkish coffee with a smooth finish.",
        "image": "/images/img4.jpg",
        "stock": 75,
        "price": "19.99",
    },
    {
        "name": "Dried Mint Leaves",
        "slug": "dried-mint-leaves",
        "category": "Herbs",
        "brand": "Alshami Organic",
        "description": "Dried mint leaves for tea, cooking and traditional recipes.",
        "image": "/images/img5.jpg",
        "stock": 120,
        "price": "8.99",
    },
    {
        "name": "Za'atar Spice Blend",
        "slug": "zaatar-spice-blend",
        "category": "Spices",
        "brand": "Alshami",
        "description": "Za'atar with thyme, sesame, sumac and salt.",
        "image": "/images/img6.jpg",
        "stock": 85,
        "price": "12.99",
    },
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # only seed an empty catalog
        if db.query(ProductModel).first():
            logger.info("Catalog already seeded")
            return
        for data in PRODUCTS:
            db.add(ProductModel(**{**data, "price": Decimal(data["price"])}))
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
