"""
Synthetic Warehouse Seeder

Fills dim_customers, dim_products and fact_sales with reproducible fake data
for local report development.

Usage:
    python scripts/seed_warehouse.py --database-url sqlite:///warehouse.db
"""

import argparse
from datetime import date, timedelta
from typing import Any, Dict, List

import numpy as np
import structlog
from faker import Faker
from sqlalchemy import insert

from retail_analytics.config.logging import configure_logging
from retail_analytics.database import Base, DimCustomer, DimProduct, FactSale
from retail_analytics.database.connection import close_database, get_db, init_database

logger = structlog.get_logger(__name__)

fake = Faker()
Faker.seed(42)
rng = np.random.default_rng(42)

CATEGORIES = {
    "Bikes": ["Mountain Bikes", "Road Bikes", "Touring Bikes"],
    "Components": ["Frames", "Wheels", "Handlebars"],
    "Clothing": ["Jerseys", "Caps", "Gloves"],
    "Accessories": ["Helmets", "Bottles and Cages", "Tires and Tubes"],
}
COUNTRIES = ["United States", "Australia", "United Kingdom", "Germany", "France", "Canada"]


def execute_batch_insert(model: Any, records: List[Dict[str, Any]], chunk_size: int = 1000) -> None:
    """Insert records in chunks inside one transaction"""
    if not records:
        return

    with get_db() as db:
        for i in range(0, len(records), chunk_size):
            db.execute(insert(model), records[i:i + chunk_size])

    logger.info(f"Inserted {len(records)} records into {model.__tablename__}")


def generate_customers(n: int, end_date: date) -> List[Dict[str, Any]]:
    """Generate customer dimension rows"""
    customers = []
    for key in range(1, n + 1):
        customers.append({
            "customer_key": key,
            "customer_id": 11000 + key,
            "customer_number": f"AW{11000 + key:08d}",
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "country": str(rng.choice(COUNTRIES)),
            "gender": str(rng.choice(["Male", "Female", "n/a"], p=[0.49, 0.49, 0.02])),
            "birthdate": fake.date_between(start_date=end_date - timedelta(days=365 * 80), end_date=end_date - timedelta(days=365 * 18)),
            "create_date": fake.date_between(start_date=end_date - timedelta(days=365 * 4), end_date=end_date),
        })
    return customers


def generate_products(n: int, end_date: date) -> List[Dict[str, Any]]:
    """Generate product dimension rows"""
    products = []
    categories = list(CATEGORIES)
    for key in range(1, n + 1):
        category = str(rng.choice(categories))
        subcategory = str(rng.choice(CATEGORIES[category]))
        products.append({
            "product_key": key,
            "product_id": 200 + key,
            "product_name": f"{fake.word().title()} {subcategory[:-1]} {key}",
            "category": category,
            "subcategory": subcategory,
            "cost": float(np.round(rng.uniform(2, 1500), 2)),
            "start_date": fake.date_between(start_date=end_date - timedelta(days=365 * 5), end_date=end_date - timedelta(days=365)),
        })
    return products


def generate_sales(
    n_orders: int,
    customers: List[Dict[str, Any]],
    products: List[Dict[str, Any]],
    end_date: date,
) -> List[Dict[str, Any]]:
    """Generate sales lines; each order has one to four lines"""
    start = end_date - timedelta(days=365 * 3)
    span_days = (end_date - start).days

    sales = []
    for i in range(n_orders):
        order_number = f"SO{43697 + i}"
        customer_key = customers[int(rng.integers(len(customers)))]["customer_key"]
        order_date = start + timedelta(days=int(rng.integers(span_days)))
        shipping_date = order_date + timedelta(days=7)
        due_date = order_date + timedelta(days=12)

        for _ in range(int(rng.integers(1, 5))):
            product = products[int(rng.integers(len(products)))]
            quantity = int(rng.integers(1, 4))
            price = round(product["cost"] * float(rng.uniform(1.1, 1.8)), 2)
            sales.append({
                "order_number": order_number,
                "product_key": product["product_key"],
                "customer_key": customer_key,
                "order_date": order_date,
                "shipping_date": shipping_date,
                "due_date": due_date,
                "sales_amount": round(price * quantity, 2),
                "quantity": quantity,
                "price": price,
            })
    return sales


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the warehouse with synthetic data")
    parser.add_argument("--database-url", default=None, help="Warehouse URL (defaults to settings)")
    parser.add_argument("--customers", type=int, default=2000)
    parser.add_argument("--products", type=int, default=300)
    parser.add_argument("--orders", type=int, default=20000)
    parser.add_argument("--end-date", type=date.fromisoformat, default=date(2024, 6, 30))
    args = parser.parse_args()

    configure_logging()
    engine = init_database(args.database_url)
    Base.metadata.create_all(engine)

    try:
        customers = generate_customers(args.customers, args.end_date)
        products = generate_products(args.products, args.end_date)
        sales = generate_sales(args.orders, customers, products, args.end_date)

        execute_batch_insert(DimCustomer, customers)
        execute_batch_insert(DimProduct, products)
        execute_batch_insert(FactSale, sales)
    finally:
        close_database()

    logger.info(
        "Warehouse seeded",
        customers=len(customers),
        products=len(products),
        sales_lines=len(sales),
    )


if __name__ == "__main__":
    main()
