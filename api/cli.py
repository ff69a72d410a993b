#!/usr/bin/env python3
"""CLI for Pionia management tasks.

Usage:
    python -m cli <command>

Commands:
    make-service   Scaffold a new (optionally generic) service module
    create-tables  Create missing tables for every registered model
    list-services  Show the services the dispatcher knows about
"""

import argparse
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def cmd_make_service(args: argparse.Namespace) -> int:
    """Scaffold a service module from the bundled templates."""
    from codegen import MIXINS, ServiceGenerator
    from core.config import get_settings

    directory = args.directory or get_settings().services_dir_path

    mixins = None
    if args.mixins:
        mixins = args.mixins.split(",")
    elif args.generic:
        mixins = list(MIXINS)

    try:
        generator = ServiceGenerator(
            args.name,
            directory,
            mixins=mixins,
            table=args.table,
            pk_field=args.pk_field,
            output=print,
        )
        generator.generate()
    except (ValueError, FileExistsError) as e:
        logger.error(str(e))
        return 1
    return 0


def cmd_create_tables() -> int:
    """Create database tables defined in models."""
    from core.database import create_all_tables, create_engine, dispose_engine

    async def _run() -> None:
        engine = create_engine()
        try:
            await create_all_tables(engine)
        finally:
            await dispose_engine(engine)

    logger.info("Creating database tables...")
    asyncio.run(_run())
    logger.info("Tables created successfully")
    return 0


def cmd_list_services() -> int:
    from services import build_registry

    registry = build_registry()
    for name in registry.names():
        service = registry.get(name)
        print(f"{name}: {', '.join(sorted(service.actions))}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pionia CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    make_service = subparsers.add_parser(
        "make-service",
        help="Scaffold a new service module",
    )
    make_service.add_argument("name", help="Short name, e.g. 'article' -> ArticleService")
    make_service.add_argument(
        "--generic",
        action="store_true",
        help="Generate a generic CRUD service with every mixin",
    )
    make_service.add_argument(
        "--mixins",
        help="Comma-separated subset of: retrieve,list,create,update,delete",
    )
    make_service.add_argument("--table", help="Table name (defaults to '<name>s')")
    make_service.add_argument("--pk-field", default="id", help="Primary key column")
    make_service.add_argument(
        "--directory", help="Target directory (defaults to SERVICES_DIR)"
    )

    subparsers.add_parser(
        "create-tables",
        help="Create missing tables for every registered model",
    )
    subparsers.add_parser(
        "list-services",
        help="Show registered services and their actions",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "make-service":
        return cmd_make_service(args)
    elif args.command == "create-tables":
        return cmd_create_tables()
    elif args.command == "list-services":
        return cmd_list_services()
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
