"""Storefront database management CLI.

Provides commands to create and drop the database schema, and to load a
product catalogue from a JSON file.

Usage:
    python src/manage.py setup-db                  # Create all tables
    python src/manage.py drop-db                   # Drop all tables
    python src/manage.py load-products data.json   # Add products from a JSON list
"""

import argparse
import json
import sys


def setup_database():
    """Create the database schema for the storefront domain."""
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_database():
    """Drop the database schema for the storefront domain."""
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def load_products(path):
    """Add every product listed in a JSON file (a list of product objects)."""
    from storefront.catalogue.management import AddProduct
    from storefront.domain import storefront

    with open(path, encoding="utf-8") as handle:
        products = json.load(handle)

    storefront.init()
    with storefront.domain_context():
        for product in products:
            product_id = storefront.process(AddProduct(**product), asynchronous=False)
            print(f"  added {product.get('name')} ({product_id})")
    print(f"Loaded {len(products)} products.")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    load_parser = subparsers.add_parser("load-products", help="Add products from a JSON file")
    load_parser.add_argument("path", help="JSON file holding a list of products")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "load-products":
        load_products(args.path)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
