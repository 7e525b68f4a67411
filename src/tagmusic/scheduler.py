"""
File discovery and bounded parallel execution.

Each format is its own phase: all files of one format are discovered, then
run through the pipeline on a fixed-size worker pool, then the next format
starts. Workers share nothing; results are collected on the calling thread.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional

from tagmusic.models import AudioFormat, FileTask, RunSummary
from tagmusic.pipeline import TaggingPipeline

logger = logging.getLogger(__name__)

# Cores left free for the rest of the system
RESERVED_CORES = 2


def detect_processor_count() -> int:
    """Number of usable processors, 2 if it cannot be determined."""
    if hasattr(os, "sched_getaffinity"):
        try:
            return len(os.sched_getaffinity(0)) or 2
        except OSError:
            pass
    return os.cpu_count() or 2


def resolve_worker_count(override: Optional[int] = None, cpu_count: Optional[int] = None) -> int:
    """
    Size of the worker pool.

    Args:
        override: Explicit parallelism (config or environment). 0/None = automatic.
        cpu_count: Processor count; detected when None.

    Returns:
        override if set, else processor count - 2, never less than 1.
    """
    if override:
        return max(1, int(override))

    cores = cpu_count if cpu_count is not None else detect_processor_count()
    return max(1, cores - RESERVED_CORES)


def discover_files(root: Path, fmt: AudioFormat) -> List[FileTask]:
    """
    Recursively find files of one format under root.

    Extensions are matched case-insensitively. Order is not significant.
    """
    root = Path(root)
    if not root.is_dir():
        logger.warning(f"Music directory not found: {root}")
        return []

    return [
        FileTask(path=path, format=fmt)
        for path in root.rglob("*")
        if path.suffix.lower() == fmt.extension and path.is_file()
    ]


class Scheduler:
    """Runs a TaggingPipeline over every matching file with bounded parallelism."""

    def __init__(self, pipeline: TaggingPipeline, workers: int):
        self.pipeline = pipeline
        self.workers = max(1, workers)
        logger.debug(f"Scheduler initialized with {self.workers} workers")

    def run_format(self, root: Path, fmt: AudioFormat) -> RunSummary:
        """
        Process every file of one format under root.

        Returns:
            RunSummary for this phase. Zero matches is not an error.
        """
        summary = RunSummary()
        tasks = discover_files(root, fmt)
        summary.matched[fmt] = len(tasks)

        if not tasks:
            logger.info(f"No {fmt.value} files found")
            return summary

        logger.info(f"Processing {len(tasks)} {fmt.value} files...")

        pool_size = min(self.workers, len(tasks))
        with ThreadPoolExecutor(
            max_workers=pool_size, thread_name_prefix=f"tagmusic-{fmt.value}"
        ) as executor:
            futures = {executor.submit(self.pipeline.process, task): task for task in tasks}

            try:
                for future in as_completed(futures):
                    task = futures[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.error(f"Processing failed for {task.path}: {e}", exc_info=True)
                        summary.failed += 1
                        continue

                    summary.record(result)
            except KeyboardInterrupt:
                # Queued files are dropped; files already running finish.
                logger.warning("Interrupted, cancelling queued files")
                executor.shutdown(wait=True, cancel_futures=True)
                raise

        return summary

    def run(self, root: Path, formats: Iterable[AudioFormat]) -> RunSummary:
        """Process each format as a separate, sequential phase."""
        total = RunSummary()
        for fmt in formats:
            total.merge(self.run_format(root, fmt))
        return total
