"""
Per-file analysis and tagging pipeline.

Stages run in a fixed order for every file:

    repair -> tempo -> key -> loudness -> tag write

Every stage is best-effort. A stage that fails only leaves its field out of
the AnalysisResult; the next stage always runs. Only fields that were
actually produced are written, nothing is cleared or zeroed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from tagmusic.analyze.beats import AubioBeatDetector, AubioTrackBeatDetector, BeatDetector
from tagmusic.analyze.key import KeyDetector, KeyfinderCliKeyDetector
from tagmusic.analyze.loudness import LoudnessAnalyzer, RsgainLoudnessAnalyzer
from tagmusic.analyze.tempo import RoundingMode, estimate_tempo
from tagmusic.config import Config
from tagmusic.models import AnalysisResult, AudioFormat, FileTask
from tagmusic.repair import FfmpegRepairer, NoopRepairer, Repairer
from tagmusic.tagging import TagWriter, tag_writer_for

logger = logging.getLogger(__name__)


class Stage(Enum):
    PENDING = "pending"
    REPAIRED = "repaired"
    REPAIR_SKIPPED = "repair-skipped"
    TEMPO_DONE = "tempo-done"
    KEY_DONE = "key-done"
    LOUDNESS_DONE = "loudness-done"
    WRITTEN = "written"
    DONE = "done"


@dataclass
class Toolset:
    """Collaborators used by the pipeline, with per-format repair and tag writing."""

    beat_detector: BeatDetector
    key_detector: KeyDetector
    loudness_analyzer: LoudnessAnalyzer
    repairers: Dict[AudioFormat, Repairer] = field(default_factory=dict)
    tag_writers: Dict[AudioFormat, TagWriter] = field(default_factory=dict)

    def repairer_for(self, fmt: AudioFormat) -> Repairer:
        return self.repairers.get(fmt) or NoopRepairer()

    def tag_writer_for(self, fmt: AudioFormat) -> TagWriter:
        writer = self.tag_writers.get(fmt)
        if writer is None:
            raise ValueError(f"No tag writer configured for {fmt.value}")
        return writer


class TaggingPipeline:
    """Runs all stages for one FileTask."""

    def __init__(self, toolset: Toolset, rounding: RoundingMode = RoundingMode.NEAREST):
        self.toolset = toolset
        self.rounding = rounding

    def _advance(self, task: FileTask, stage: Stage) -> Stage:
        logger.debug(f"  {task.name}: {stage.value}")
        return stage

    def process(self, task: FileTask) -> AnalysisResult:
        """
        Analyze and tag one file.

        Args:
            task: File and format to process.

        Returns:
            AnalysisResult with whichever fields could be produced.
        """
        result = AnalysisResult()
        path = task.path
        self._advance(task, Stage.PENDING)

        # 1. Container repair
        if task.format.needs_repair:
            try:
                result.repaired = self.toolset.repairer_for(task.format).repair(path)
            except Exception as e:
                logger.warning(f"  ✗ Repair failed for {task.name}: {e}")
        self._advance(task, Stage.REPAIRED if result.repaired else Stage.REPAIR_SKIPPED)

        # 2. Tempo
        result.bpm = self._detect_tempo(path)
        self._advance(task, Stage.TEMPO_DONE)

        # 3. Key
        result.key = self._detect_key(path)
        self._advance(task, Stage.KEY_DONE)

        # 4. Loudness (rsgain writes its own tags)
        try:
            result.loudness_applied = bool(self.toolset.loudness_analyzer.apply(path))
        except Exception as e:
            logger.warning(f"  ✗ Loudness analysis failed for {task.name}: {e}")
        self._advance(task, Stage.LOUDNESS_DONE)

        # 5. Tags
        self._write_tags(task, result)
        self._advance(task, Stage.WRITTEN)

        logger.info(f"  ✅ {task.name}: {result.bpm or '-'} BPM, Key: {result.key or '-'}")
        self._advance(task, Stage.DONE)
        return result

    def _detect_tempo(self, path: Path) -> Optional[int]:
        try:
            onsets = self.toolset.beat_detector.detect(path)
        except Exception as e:
            logger.warning(f"  ✗ Beat detection failed for {path.name}: {e}")
            return None

        tempo = estimate_tempo(onsets, self.rounding)
        if not tempo.usable:
            logger.warning(f"  ✗ No usable tempo for {path.name} ({len(onsets)} beats)")
            return None
        return tempo.bpm

    def _detect_key(self, path: Path) -> Optional[str]:
        try:
            key = self.toolset.key_detector.detect(path)
        except Exception as e:
            logger.warning(f"  ✗ Key detection failed for {path.name}: {e}")
            return None

        if not key:
            logger.warning(f"  ✗ No key detected for {path.name}")
            return None
        return key

    def _write_tags(self, task: FileTask, result: AnalysisResult) -> None:
        try:
            writer = self.toolset.tag_writer_for(task.format)
        except ValueError as e:
            logger.warning(f"  ✗ {e}")
            return

        if result.bpm is not None:
            try:
                writer.write_bpm(task.path, result.bpm)
                result.bpm_written = True
            except Exception as e:
                logger.warning(f"  ✗ Could not write BPM to {task.name}: {e}")

        if result.key is not None:
            try:
                writer.write_key(task.path, result.key)
                result.key_written = True
            except Exception as e:
                logger.warning(f"  ✗ Could not write key to {task.name}: {e}")


def configured_formats(config: Config) -> List[AudioFormat]:
    """Formats to process, in configured order."""
    return [AudioFormat.from_name(name) for name in config["scheduler"]["formats"]]


def required_tools(config: Config) -> List[str]:
    """External commands the configured pipeline needs on PATH."""
    tools = []
    if any(fmt.needs_repair for fmt in configured_formats(config)):
        tools.append(FfmpegRepairer.command)
    tools.append(KeyfinderCliKeyDetector.command)
    tools.append(RsgainLoudnessAnalyzer.command)
    if config["analysis"]["beat_method"] == "aubiotrack":
        tools.append(AubioTrackBeatDetector.command)
    return tools


def build_pipeline(config: Config) -> TaggingPipeline:
    """
    Wire the default collaborators from config.

    Raises:
        MissingToolError: If the aubio beat method is selected but aubio is not installed.
    """
    analysis = config["analysis"]
    if analysis["beat_method"] == "aubio":
        beat_detector = AubioBeatDetector(
            hop_size=analysis["hop_size"], buf_size=analysis["buf_size"]
        )
    else:
        beat_detector = AubioTrackBeatDetector(decimal_point=analysis["decimal_point"])

    formats = configured_formats(config)
    repairers = {
        fmt: FfmpegRepairer(temp_dir=config.get("repair", "temp_dir"))
        for fmt in formats
        if fmt.needs_repair
    }

    toolset = Toolset(
        beat_detector=beat_detector,
        key_detector=KeyfinderCliKeyDetector(notation=config["key_detection"]["notation"]),
        loudness_analyzer=RsgainLoudnessAnalyzer(),
        repairers=repairers,
        tag_writers={fmt: tag_writer_for(fmt) for fmt in formats},
    )
    return TaggingPipeline(toolset, RoundingMode.from_name(analysis["rounding"]))
