"""Ipelfs CLI entry points.
This module exposes volume, collection, transfer, and web commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import IpelfsConfig
from core.constants import APP_NAME, APP_VERSION
from core.errors import ConfigError, IpelfsError, StartupError
from core.logging_config import configure_logging
from volume.client import IpelfsClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog=APP_NAME, description="IP Embedded Local Filesystem Tool")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("--registry", help="Override IPELFS_REGISTRY_PATH for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_create_command(subparsers)
    _add_add_command(subparsers)
    _add_remove_command(subparsers)
    _add_delete_command(subparsers)
    _add_list_command(subparsers)
    _add_transfer_command(subparsers)
    _add_web_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Ipelfs CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code: 0 success, 1 failed operation, 2 startup failure.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()
    try:
        client = _build_client(args.registry)
        client.initialize()
    except (ConfigError, StartupError) as error:
        print(f"startup_error={error}")
        return 2
    try:
        return _dispatch(client, args)
    except IpelfsError as error:
        print(f"error={error}")
        print(f"kind={error.kind}")
        return 1


def _build_client(registry_path: str | None) -> IpelfsClient:
    """Build SDK client with optional registry override.

    Args:
        registry_path: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = IpelfsConfig.from_env()
    if registry_path:
        config = replace(config, registry_path=Path(registry_path).expanduser())
    return IpelfsClient(config)


def _dispatch(client: IpelfsClient, args: argparse.Namespace) -> int:
    target = getattr(args, "target", None)
    if args.command == "create" and target == "volume":
        volume_id = client.volumes.create(args.path)
        print(f"volume_id={volume_id}")
        return 0
    if args.command == "create" and target == "collection":
        collection_id = client.collections.create(args.volume_id, args.name)
        print(f"collection_id={collection_id}")
        return 0
    if args.command == "add":
        volume_id = client.volumes.add(args.path)
        print(f"volume_id={volume_id}")
        return 0
    if args.command == "remove":
        volume_id = client.volumes.remove(args.value)
        print(f"removed={volume_id}")
        return 0
    if args.command == "delete" and target == "volume":
        volume_id = client.volumes.delete(args.value)
        print(f"deleted={volume_id}")
        print("hint=You may now manage or wipe the volume manually")
        return 0
    if args.command == "delete" and target == "collection":
        collection_id = client.collections.delete(args.volume_id, args.value, args.by)
        print(f"deleted={collection_id}")
        return 0
    if args.command == "list" and target == "volume":
        return _run_list_volumes(client)
    if args.command == "list" and target == "collection":
        return _run_list_collections(client, args)
    if args.command == "transfer":
        return _run_transfer_command(client, args)
    if args.command == "web":
        return _run_web_command(client, args)
    return 2


def _run_list_volumes(client: IpelfsClient) -> int:
    """Handle list volume command.

    Args:
        client: SDK client.

    Returns:
        Exit code.
    """
    volumes = client.volumes.list_volumes()
    for volume_id, path in volumes.items():
        print(f"{volume_id}\t{path}")
    print(f"count={len(volumes)}")
    return 0


def _run_list_collections(client: IpelfsClient, args: argparse.Namespace) -> int:
    collections = client.collections.list_collections(args.volume_id)
    for collection_id, name in collections.items():
        print(f"{collection_id}\t{name}")
    print(f"count={len(collections)}")
    return 0


def _run_transfer_command(client: IpelfsClient, args: argparse.Namespace) -> int:
    """Handle transfer command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    result = client.transfers.transfer(args.from_volume_id, args.collection_id, args.to_volume_id)
    print(f"collection_id={result.collection_id}")
    print(f"name={result.name}")
    print(f"path={result.path}")
    return 0


def _run_web_command(client: IpelfsClient, args: argparse.Namespace) -> int:
    import uvicorn

    from web.app import create_app

    port = args.port or client.config.web_port
    uvicorn.run(create_app(client), host=args.host, port=port)
    return 0


def _add_create_command(subparsers: Any) -> None:
    """Register create subcommand."""
    parser = subparsers.add_parser("create", help="Initialize a volume or collection")
    targets = parser.add_subparsers(dest="target", required=True)
    volume_parser = targets.add_parser("volume", help="Initialize an empty directory as a volume")
    volume_parser.add_argument("path", help="Empty directory or mounted device path")
    collection_parser = targets.add_parser("collection", help="Create a collection in a volume")
    collection_parser.add_argument("volume_id", help="Owning volume id")
    collection_parser.add_argument("name", help="Collection name: [a-z0-9_]+")


def _add_add_command(subparsers: Any) -> None:
    """Register add subcommand."""
    parser = subparsers.add_parser("add", help="Attach an existing volume")
    targets = parser.add_subparsers(dest="target", required=True)
    volume_parser = targets.add_parser("volume", help="Attach a volume by its ownership marker")
    volume_parser.add_argument("path", help="Volume root or mounted device path")


def _add_remove_command(subparsers: Any) -> None:
    """Register remove subcommand."""
    parser = subparsers.add_parser("remove", help="Detach a volume, keeping its ownership marker")
    targets = parser.add_subparsers(dest="target", required=True)
    volume_parser = targets.add_parser("volume", help="Detach a volume")
    volume_parser.add_argument("value", help="Volume id or path")


def _add_delete_command(subparsers: Any) -> None:
    """Register delete subcommand."""
    parser = subparsers.add_parser("delete", help="Release a volume or delete a collection")
    targets = parser.add_subparsers(dest="target", required=True)
    volume_parser = targets.add_parser("volume", help="Release a volume and its markers")
    volume_parser.add_argument("value", help="Volume id or path")
    collection_parser = targets.add_parser("collection", help="Delete a collection and its files")
    collection_parser.add_argument("volume_id", help="Owning volume id")
    collection_parser.add_argument("value", help="Collection id or name")
    collection_parser.add_argument(
        "--by",
        choices=("id", "name"),
        help="Match only by id or only by name",
    )


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand."""
    parser = subparsers.add_parser("list", help="List volumes or collections")
    targets = parser.add_subparsers(dest="target", required=True)
    targets.add_parser("volume", help="List attached volumes")
    collection_parser = targets.add_parser("collection", help="List collections in a volume")
    collection_parser.add_argument("volume_id", help="Volume id")


def _add_transfer_command(subparsers: Any) -> None:
    """Register transfer subcommand."""
    parser = subparsers.add_parser("transfer", help="Move a collection to another volume")
    parser.add_argument("from_volume_id", help="Source volume id")
    parser.add_argument("collection_id", help="Collection id")
    parser.add_argument("to_volume_id", help="Destination volume id")


def _add_web_command(subparsers: Any) -> None:
    """Register web subcommand."""
    parser = subparsers.add_parser("web", help="Serve the HTTP API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("-p", "--port", type=int, help="Listen port (default IPELFS_WEB_PORT)")
