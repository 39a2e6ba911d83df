"""Bolt Reviews management CLI.

The OAuth handshake runs outside this service; once it has produced an
offline access token, `install-shop` records it and runs the first-install
hook (default settings + initial catalog sync).

Usage:
    bolt-reviews-manage init-db
    bolt-reviews-manage install-shop --shop demo.myshopify.com --access-token shpat_... [--scope read_products]
"""

import argparse
import logging
import sys

from bolt_reviews.database import SessionLocal, init_database
from bolt_reviews.services.catalog import install_shop
from bolt_reviews.shopify_client import ShopifyCatalogClient

logger = logging.getLogger(__name__)


def run_install(shop: str, access_token: str, scope: str | None = None):
    db = SessionLocal()
    try:
        catalog = ShopifyCatalogClient(shop=shop, access_token=access_token)
        return install_shop(db, shop, access_token, scope, catalog)
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Bolt Reviews management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create missing database tables")

    install_parser = subparsers.add_parser(
        "install-shop",
        help="Store a shop's offline token and run the first-install hook",
    )
    install_parser.add_argument("--shop", required=True, help="e.g. demo.myshopify.com")
    install_parser.add_argument("--access-token", required=True)
    install_parser.add_argument("--scope", default=None)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "init-db":
        init_database()
        print("Database ready.")
        return 0

    result = run_install(args.shop, args.access_token, args.scope)

    print(f"Installed {args.shop}. Settings {'created' if result.settings_created else 'already existed'}.")
    if result.synced:
        print(f"Synced {result.sync.created} new and {result.sync.updated} existing products.")
    else:
        print(f"Initial product sync failed: {result.sync_error}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
