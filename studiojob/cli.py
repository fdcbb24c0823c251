"""Command-line entry point: upload an image, generate, and optionally download."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from studiojob.common.job_store import MediaReference
from studiojob.config import load_config
from studiojob.dependencies import DependencyRegistry, build_dependencies
from studiojob.services.lifecycle import LifecycleSession
from studiojob.services.presentation import ConsolePresenter


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="studiojob",
        description="Run an image effect generation job and save the result",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        help="Optional explicit path to a studiojob config file",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory downloads are written to (defaults to configuration/env)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Upload IMAGE and run the configured effect on it")
    generate.add_argument("image", help="Path to a JPEG/PNG input image")
    generate.add_argument(
        "--download",
        action="store_true",
        help="Save the generated media once the job completes",
    )

    download = subparsers.add_parser("download", help="Save an already generated media URL")
    download.add_argument("url", help="URL of the generated media")

    return parser.parse_args(argv)


async def _run_generate(registry: DependencyRegistry, image: Path, download: bool) -> int:
    orchestrator = registry.orchestrator
    session = LifecycleSession()

    asset = await orchestrator.upload(session, image)
    if asset is None:
        return 1

    media = await orchestrator.generate(session)
    if media is None:
        return 1

    if download:
        await orchestrator.download(session)
    return 0


async def _run_download(registry: DependencyRegistry, url: str) -> int:
    session = LifecycleSession()
    outcome = await registry.orchestrator.download(session, MediaReference.from_url(url))
    return 0 if outcome is not None and outcome.path is not None else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config = load_config(args.config_path)
    if args.output_dir:
        config.download.output_dir = Path(args.output_dir)

    registry = build_dependencies(config, presenter=ConsolePresenter())

    if args.command == "generate":
        return asyncio.run(_run_generate(registry, Path(args.image), args.download))
    return asyncio.run(_run_download(registry, args.url))


__all__ = ["main"]
