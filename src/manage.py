"""Printshop database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py seed-sizes # Load the standard print sizes
"""

import argparse
import sys

STANDARD_PRINT_SIZES = [
    {"size_code": "4x6", "display_name": "4 x 6 in", "base_price": 0.29, "sort_order": 1},
    {"size_code": "5x7", "display_name": "5 x 7 in", "base_price": 0.99, "sort_order": 2},
    {"size_code": "8x10", "display_name": "8 x 10 in", "base_price": 3.99, "sort_order": 3},
    {"size_code": "11x14", "display_name": "11 x 14 in", "base_price": 9.99, "sort_order": 4},
]


def _init_domain():
    from printshop.domain import printshop

    printshop.init()
    return printshop


def setup_database():
    from printshop.utils.db import setup_db

    domain = _init_domain()
    print("Creating printshop database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from printshop.utils.db import drop_db

    domain = _init_domain()
    print("Dropping printshop database schema...")
    drop_db(domain)
    print("Done.")


def seed_print_sizes():
    from printshop.catalogue.management import AddPrintSize
    from printshop.catalogue.print_size import PrintSize

    domain = _init_domain()
    with domain.domain_context():
        sizes = domain.repository_for(PrintSize)
        for size in STANDARD_PRINT_SIZES:
            if sizes.by_code(size["size_code"]) is not None:
                print(f"  {size['size_code']} already present, skipping.")
                continue
            domain.process(AddPrintSize(**size), asynchronous=False)
            print(f"  Added {size['size_code']} at {size['base_price']:.2f}.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Printshop database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-sizes", help="Load the standard print size catalogue")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-sizes":
        seed_print_sizes()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
