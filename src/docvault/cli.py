"""DocVault CLI - key tooling, ingestion, tenant deletion and migrations.

Usage:
    docvault key build --tenant T --document D --filename F [--stage STAGE]
    docvault key check --tenant T KEY
    docvault ingest pending
    docvault ingest tenant T
    docvault ingest document T D
    docvault tenant delete T [--force] [--complete]
    docvault db upgrade [--revision REV]
    docvault db revision
    docvault serve [--host HOST] [--port PORT]

Output is JSON on stdout; logs go to stderr as JSON lines.

Exit codes:
    0: Success / key valid / document processed
    1: Internal error (unexpected)
    2: Rejected (invalid input, key not valid for tenant, domain error)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import TYPE_CHECKING, Any

from docvault.errors import DocvaultError
from docvault.logging_config import configure_logging
from docvault.storage import keys
from docvault.storage.guard import TenantGuard

if TYPE_CHECKING:
    from docvault.api.container import ServiceContainer


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _resolve_container(container: ServiceContainer | None) -> ServiceContainer:
    if container is not None:
        return container
    from docvault.api.container import build_container

    return build_container()


def cmd_key_build(args: argparse.Namespace) -> int:
    key = keys.build_key(args.tenant, args.document, args.filename, args.stage)
    _output_json({"key": key})
    return 0


def cmd_key_check(args: argparse.Namespace) -> int:
    """Report whether KEY belongs to the tenant and is well-formed."""
    guard = TenantGuard()
    valid = guard.validate(args.key, args.tenant)
    _output_json(
        {
            "key": args.key,
            "tenant_id": args.tenant,
            "key_tenant_id": guard.extract_tenant_id(args.key),
            "valid": valid,
        }
    )
    return 0 if valid else 2


def cmd_ingest(args: argparse.Namespace, container: ServiceContainer | None) -> int:
    services = _resolve_container(container)

    if args.ingest_command == "pending":
        processed = asyncio.run(services.job.process_pending())
        _output_json({"processed": processed})
        return 0

    if args.ingest_command == "tenant":
        processed = asyncio.run(services.job.process_tenant(args.tenant))
        _output_json({"tenant_id": args.tenant, "processed": processed})
        return 0

    ok = asyncio.run(services.job.process_document(args.document, args.tenant))
    _output_json({"tenant_id": args.tenant, "document_id": args.document, "processed": ok})
    return 0 if ok else 2


def cmd_tenant_delete(args: argparse.Namespace, container: ServiceContainer | None) -> int:
    services = _resolve_container(container)

    if args.complete:
        result = asyncio.run(services.deletion.delete_complete(args.tenant, force=args.force))
        _output_json(result.to_dict())
        return 0

    objects = asyncio.run(services.deletion.delete_tenant_objects(args.tenant, force=args.force))
    _output_json(objects.to_dict())
    return 0 if objects.verified else 2


def cmd_db(args: argparse.Namespace) -> int:
    from docvault.persistence import migrate

    if args.db_command == "upgrade":
        _output_json({"revision": migrate.upgrade(revision=args.revision)})
        return 0

    _output_json({"head": migrate.head_revision()})
    return 0


def cmd_serve(args: argparse.Namespace, container: ServiceContainer | None) -> int:
    import uvicorn

    from docvault.api.main import create_app

    uvicorn.run(create_app(container), host=args.host, port=args.port, log_config=None)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docvault",
        description="DocVault - tenant-isolated document storage CLI",
    )
    parser.add_argument("--log-level", default=None, help="Override DOCVAULT_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # key build / key check
    key_parser = subparsers.add_parser("key", help="Storage key tooling")
    key_subparsers = key_parser.add_subparsers(dest="key_command", help="Key subcommands")

    build_parser = key_subparsers.add_parser("build", help="Build a canonical storage key")
    build_parser.add_argument("--tenant", required=True, help="Tenant ID")
    build_parser.add_argument("--document", required=True, help="Document ID")
    build_parser.add_argument("--filename", required=True, help="Original filename")
    build_parser.add_argument(
        "--stage",
        default=keys.Stage.RAW.value,
        choices=[stage.value for stage in keys.Stage],
        help="Pipeline stage (default: raw)",
    )

    check_parser = key_subparsers.add_parser("check", help="Check a key against a tenant")
    check_parser.add_argument("--tenant", required=True, help="Tenant ID")
    check_parser.add_argument("key", help="Storage key to check")

    # ingest pending / tenant / document
    ingest_parser = subparsers.add_parser("ingest", help="Run document ingestion")
    ingest_subparsers = ingest_parser.add_subparsers(
        dest="ingest_command", help="Ingestion subcommands"
    )
    ingest_subparsers.add_parser("pending", help="Process every tenant with pending documents")
    tenant_ingest = ingest_subparsers.add_parser("tenant", help="Process one tenant")
    tenant_ingest.add_argument("tenant", help="Tenant ID")
    document_ingest = ingest_subparsers.add_parser("document", help="Process one document")
    document_ingest.add_argument("tenant", help="Tenant ID")
    document_ingest.add_argument("document", help="Document ID")

    # tenant delete
    tenant_parser = subparsers.add_parser("tenant", help="Tenant lifecycle operations")
    tenant_subparsers = tenant_parser.add_subparsers(
        dest="tenant_command", help="Tenant subcommands"
    )
    delete_parser = tenant_subparsers.add_parser("delete", help="Delete a tenant's stored data")
    delete_parser.add_argument("tenant", help="Tenant ID")
    delete_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Delete even if the tenant still has active users",
    )
    delete_parser.add_argument(
        "--complete",
        action="store_true",
        default=False,
        help="Also delete relational records once storage is verified empty",
    )

    # db upgrade / revision
    db_parser = subparsers.add_parser("db", help="Metadata database migrations")
    db_subparsers = db_parser.add_subparsers(dest="db_command", help="Database subcommands")
    upgrade_parser = db_subparsers.add_parser("upgrade", help="Apply migrations")
    upgrade_parser.add_argument("--revision", default="head", help="Target revision")
    db_subparsers.add_parser("revision", help="Print the newest shipped revision")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    return parser


def main(argv: list[str] | None = None, *, container: ServiceContainer | None = None) -> int:
    """Main entry point.

    Args:
        argv: Arguments (defaults to sys.argv[1:]).
        container: Pre-built services (tests); built from the environment if None.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.command is None:
            parser.print_help()
            return 0

        configure_logging(args.log_level)

        if args.command == "key":
            if args.key_command == "build":
                return cmd_key_build(args)
            if args.key_command == "check":
                return cmd_key_check(args)
            parser.parse_args(["key", "--help"])
            return 0

        if args.command == "ingest":
            if args.ingest_command is None:
                parser.parse_args(["ingest", "--help"])
                return 0
            return cmd_ingest(args, container)

        if args.command == "tenant":
            if args.tenant_command == "delete":
                return cmd_tenant_delete(args, container)
            parser.parse_args(["tenant", "--help"])
            return 0

        if args.command == "db":
            if args.db_command is None:
                parser.parse_args(["db", "--help"])
                return 0
            return cmd_db(args)

        if args.command == "serve":
            return cmd_serve(args, container)

        return 0

    except DocvaultError as e:
        _output_json(_make_error_result(e.code, e.message))
        return 2
    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
