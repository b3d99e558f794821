#main.py

"""
codewatch - sync a working directory with the remote code index
"""
import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from codewatch.core.auth import get_token_provider
from codewatch.core.upload_client import UploadClient, get_repo_name
from codewatch.errors import CodewatchError
from codewatch.processing.scanner import DirectoryScanner
from codewatch.utils.config import Config, load_config
from codewatch.utils.logger import setup_logging
from codewatch.watchdog.monitor import WatchSession
from codewatch.watchdog.patterns import PatternFilter

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="codewatch",
        description="Upload a directory to the code index and keep it in sync",
    )
    parser.add_argument("root", nargs="?", default=".", help="directory to watch (default: .)")
    parser.add_argument("--config", help="path to a YAML or JSON config file")
    parser.add_argument("--once", action="store_true", help="upload once and exit without watching")
    parser.add_argument("--workspace", help="link uploads to this workspace id")
    parser.add_argument("--list-workspaces", action="store_true", help="print available workspaces and exit")
    parser.add_argument("--log-level", help="override the configured log level")
    return parser.parse_args(argv)


async def main(config: Config, root: Path, once: bool = False,
               workspace_id: Optional[str] = None, list_workspaces: bool = False) -> int:
    """Initial full upload, then watch until interrupted or the watcher fails"""
    token_provider = get_token_provider(config.api.token)
    token_provider.get_token()

    client = UploadClient(config.api, token_provider)
    if not client.context_name:
        client.context_name = get_repo_name(root)

    session = None
    try:
        if list_workspaces:
            for workspace in await client.list_workspaces():
                print(f"{workspace.workspace_id}\t{workspace.workspace_name}")
            return 0

        # An explicitly configured context id wins over the linked one
        workspace_id = workspace_id or config.api.workspace_id
        if workspace_id and not config.api.context_id:
            linked = await client.link_repository(workspace_id, client.context_name)
            if linked:
                print(f"Syncing '{client.context_name}' to workspace {workspace_id} (context {linked})")
            else:
                print(f"Syncing '{client.context_name}' to workspace {workspace_id} as a new repository")

        # Ignore rules are loaded once and shared by the scan and the watch
        pattern_filter = PatternFilter.load(root, config.watch)

        print(f"Scanning {root} ...")
        files = DirectoryScanner(pattern_filter).scan(root)

        print(f"Uploading {len(files)} files as '{client.context_name}' ...")
        context_id = await client.upload(files, False)
        logger.info(f"Initial upload complete (context {context_id})")

        if once:
            return 0

        session = WatchSession(root, client, config.watch, pattern_filter=pattern_filter)
        await session.start()
        print(f"\nWatching {root} for changes. Press Ctrl+C to stop.")
        await session.run()
        return 0

    except asyncio.CancelledError:
        return 0

    finally:
        if session:
            await session.stop(flush_pending=True)
        await client.close()


def run(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except CodewatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level=args.log_level or config.log_level,
        log_file=config.log_file,
        log_format=config.log_format,
    )

    root = Path(args.root).resolve()

    try:
        return asyncio.run(main(
            config, root,
            once=args.once,
            workspace_id=args.workspace,
            list_workspaces=args.list_workspaces,
        ))
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    except CodewatchError as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run())
