#!/usr/bin/env python3
"""
Shisha Database Initialization Script
Creates database tables and optionally seeds demo users, a product and stock
"""
import argparse
import logging
from decimal import Decimal

from shisha.core.database import SessionLocal, init_db
from shisha.models.auth import User
from shisha.models.stock import Product
from shisha.services.stock import StockService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_demo_data():
    """Insert a manager, a field worker, one product and an initial allocation"""
    db = SessionLocal()
    try:
        if db.query(User).first():
            logger.info("Database already contains users, skipping seed")
            return

        manager = User(name="Program Manager", email="manager@example.org", phone="+250700000001", role="manager")
        worker = User(name="Field Worker", email="worker@example.org", phone="+250700000002", role="umunyabuzima")
        product = Product(name="Shisha Kibondo", description="Fortified blended flour")
        db.add_all([manager, worker, product])
        db.commit()

        stock_service = StockService(db)
        stock_service.create_main_stock(product.id, Decimal("500"))
        stock_service.allocate_to_worker(worker.id, product.id, Decimal("50"))
        logger.info(f"Seeded users {manager.id}, {worker.id} and product {product.id}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create the Shisha database schema")
    parser.add_argument("--seed", action="store_true", help="insert demo users, product and stock")
    args = parser.parse_args()

    init_db()
    logger.info("Database schema ready")

    if args.seed:
        seed_demo_data()


if __name__ == "__main__":
    main()
