"""
Entry point for the snapshot_sync component.
"""

import argparse
import asyncio
import functools
import logging
import sys
from typing import List, Optional

from tqdm.contrib.logging import logging_redirect_tqdm

from .application.domain import SnapshotDescriptor
from .application.exceptions import SnapshotSyncError
from .application.service import SyncSession
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level)


def select_descriptors(
    descriptors: List[SnapshotDescriptor],
    targets: Optional[List[str]],
    names: Optional[List[str]],
) -> List[SnapshotDescriptor]:
    """Filters descriptors by target environment and name."""
    return [
        d for d in descriptors
        if (not targets or d.target_environment in targets)
        and (not names or d.name in names)
    ]


async def sync_snapshots(
    session: SyncSession,
    descriptors: List[SnapshotDescriptor],
    poll_interval: float,
) -> bool:
    """Syncs the descriptors and waits for them; returns True on success."""

    started = [await session.sync(d) for d in descriptors]

    try:
        await session.run(poll_interval=poll_interval)
    except asyncio.CancelledError:
        logger.warning("Interrupted. Cancelling running syncs...")
        await session.cancel_all()
        return False

    return all(started) and all(
        task.handle.complete for task in session.finished
    )


async def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container."""

    container = Container()
    config = container.config()
    setup_logging(level=config.logging.level)

    service = container.sync_service()
    reader = container.descriptor_reader()

    descriptor_file = args.descriptors or config.sync.descriptor_file
    if descriptor_file:
        service.register_query_callback(
            functools.partial(reader.read_file, descriptor_file)
        )

    if not service.can_query_snapshots():
        logger.error("No snapshot descriptor file given or configured.")
        return 1

    try:
        descriptors = select_descriptors(
            service.query_snapshots(), args.targets, args.names
        )

        if args.list:
            for d in descriptors:
                print(f"{d.target_environment}\t{d.name}")
            return 0

        if not descriptors:
            logger.info("No snapshots match the selection.")
            return 0

        with logging_redirect_tqdm():
            ok = await sync_snapshots(
                container.sync_session(),
                descriptors,
                config.sync.poll_interval,
            )
    except SnapshotSyncError as e:
        logger.error(f"An application error occurred: {e}")
        return 1
    finally:
        await container.http_client().aclose()

    return 0 if ok else 1


def main():
    parser = argparse.ArgumentParser(description="Snapshot Sync Component")

    parser.add_argument(
        "--descriptors",
        help="Path of the snapshot descriptor file. "
             "Defaults to sync.descriptor_file from the settings.",
    )

    parser.add_argument(
        "--targets",
        nargs="+",
        help="Only sync snapshots for these target environments.",
    )

    parser.add_argument(
        "--names",
        nargs="+",
        help="Only sync snapshots with these names.",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List the available snapshots and exit.",
    )

    cli_args = parser.parse_args()

    try:
        exit_code = asyncio.run(run_application(cli_args))
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
