#!/usr/bin/env python3
"""
tag-music entry point.

Usage:
  tag-music [MUSIC_DIR]

MUSIC_DIR defaults to the current directory. All MP3 and M4A files below it
are analyzed and tagged with BPM, key and ReplayGain values.

Environment:
  TAGMUSIC_JOBS         parallel workers (default: processor count - 2, min 1)
  TAGMUSIC_CONFIG_PATH  TOML config file (default: ./tagmusic.toml)
  TAGMUSIC_LOG_LEVEL    logging level (default: INFO)
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from tagmusic.config import Config, ConfigError
from tagmusic.models import RunSummary
from tagmusic.pipeline import build_pipeline, configured_formats, required_tools
from tagmusic.scheduler import Scheduler, resolve_worker_count
from tagmusic.tools import MissingToolError, check_dependencies

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("TAGMUSIC_LOG_LEVEL", "INFO").upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    )


def _log_summary(summary: RunSummary) -> None:
    logger.info("")
    logger.info("=" * 60)
    logger.info("📊 Tagging Summary")
    logger.info("=" * 60)
    for fmt, count in summary.matched.items():
        logger.info(f"  {fmt.value.upper()} files: {count}")
    logger.info(f"  Processed:  {summary.processed}")
    logger.info(f"  Failed:     {summary.failed}")
    logger.info(f"  BPM tagged: {summary.with_bpm}")
    logger.info(f"  Key tagged: {summary.with_key}")
    logger.info(f"  ReplayGain: {summary.with_loudness}")
    logger.info(f"  Repaired:   {summary.repaired}")
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main tagging entrypoint. Returns the process exit code."""
    _configure_logging()
    args = sys.argv[1:] if argv is None else argv

    try:
        config = Config.load()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    music_dir = Path(args[0]) if args else Path.cwd()
    if not music_dir.is_dir():
        logger.error(f"Not a directory: {music_dir}")
        return 1

    try:
        check_dependencies(required_tools(config))
        pipeline = build_pipeline(config)
    except MissingToolError as e:
        logger.error(str(e))
        return 1

    workers = resolve_worker_count(config["scheduler"]["jobs"])
    logger.info(f"Processing music files in: {music_dir} ({workers} parallel jobs)")

    try:
        summary = Scheduler(pipeline, workers).run(music_dir, configured_formats(config))
    except KeyboardInterrupt:
        logger.warning("Tagging interrupted by user")
        return 130

    _log_summary(summary)
    logger.info("All done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
