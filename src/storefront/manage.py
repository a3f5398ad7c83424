"""Storefront management CLI.

Usage:
    python -m storefront.manage setup-db   # Create the catalog store schema
    python -m storefront.manage drop-db    # Drop the catalog store schema
    python -m storefront.manage serve      # Run the HTTP API under uvicorn
"""

import argparse
import sys

from storefront.config import Settings


def _sql_store(settings: Settings):
    from storefront.catalogue.store.sql_adapter import SqlCatalogStore

    if not settings.catalog_database_url:
        print("CATALOG_DATABASE_URL is not set; the memory catalog store needs no schema.")
        return None
    return SqlCatalogStore.from_url(settings.catalog_database_url)


def setup_database(settings: Settings) -> None:
    """Create the catalog store schema."""
    store = _sql_store(settings)
    if store is None:
        return
    print("Creating catalog schema...")
    store.create_schema()
    store.close()
    print("Done.")


def drop_database(settings: Settings) -> None:
    """Drop the catalog store schema."""
    store = _sql_store(settings)
    if store is None:
        return
    print("Dropping catalog schema...")
    store.drop_schema()
    store.close()
    print("Done.")


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("storefront.app:serve", factory=True, host=host, port=port)


def main():
    parser = argparse.ArgumentParser(description="Storefront management CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("setup-db", help="Create the catalog store schema")
    subparsers.add_parser("drop-db", help="Drop the catalog store schema")
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database(Settings.from_env())
    elif args.command == "drop-db":
        drop_database(Settings.from_env())
    elif args.command == "serve":
        serve(args.host, args.port)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
