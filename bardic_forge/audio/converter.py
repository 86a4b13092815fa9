"""
MP3 transcoding through ffmpeg.

The library only stores MP3 files. Other formats (FLAC, WAV, OGG, M4A...)
are transcoded with the libmp3lame encoder before import.

Requirements:
    ffmpeg and ffprobe must be installed and on PATH.

Usage:
    from bardic_forge.audio.converter import convert_to_mp3, generate_output_path

    output = generate_output_path(Path("song.flac"), converted_dir)
    result = convert_to_mp3(Path("song.flac"), output, bitrate=256)
"""

import json
import math
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Collection, Sequence

from bardic_forge.core.config import DEFAULT_BITRATE, VALID_BITRATES
from bardic_forge.core.exceptions import ConversionError
from bardic_forge.core.logger import get_logger

logger = get_logger(__name__)


FFMPEG_BINARY = "ffmpeg"
FFPROBE_BINARY = "ffprobe"
PROBE_TIMEOUT = 60


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a single conversion.

    Attributes:
        success: True if the output file was written.
        input_path: Source file.
        output_path: Target MP3 (may not exist when success is False).
        error: Failure reason, None on success.
    """
    success: bool
    input_path: Path
    output_path: Path
    error: str | None = None


@dataclass(frozen=True)
class ConversionJob:
    """A source file and the MP3 path it should be written to."""
    input_path: Path
    output_path: Path


def get_audio_info(file_path: Path) -> dict[str, Any]:
    """
    Probe a file with ffprobe.

    Returns:
        Dict with duration (seconds, float), size (bytes), bitrate (bps),
        format, codec, sample_rate and channels. Unknown values are None.

    Raises:
        ConversionError: If ffprobe is missing or cannot read the file.
    """
    cmd = [
        FFPROBE_BINARY,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(file_path),
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=PROBE_TIMEOUT)
    except FileNotFoundError as e:
        raise ConversionError(
            "ffprobe not found - install ffmpeg to convert audio",
            details={"file_path": str(file_path)}
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ConversionError(
            f"ffprobe timed out on {file_path.name}",
            details={"file_path": str(file_path)}
        ) from e

    if result.returncode != 0:
        raise ConversionError(
            f"ffprobe failed: {result.stderr.strip()}",
            details={"file_path": str(file_path), "returncode": result.returncode}
        )

    try:
        probe = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise ConversionError(
            f"Unreadable ffprobe output: {e}",
            details={"file_path": str(file_path)}
        ) from e

    fmt = probe.get("format", {})
    audio_stream = next(
        (s for s in probe.get("streams", []) if s.get("codec_type") == "audio"),
        None
    )

    def _number(value: Any, cast: Callable[[Any], Any]) -> Any:
        try:
            return cast(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    return {
        "duration": _number(fmt.get("duration"), float),
        "size": _number(fmt.get("size"), int),
        "bitrate": _number(fmt.get("bit_rate"), int),
        "format": fmt.get("format_name"),
        "codec": audio_stream.get("codec_name") if audio_stream else "unknown",
        "sample_rate": _number(audio_stream.get("sample_rate"), int) if audio_stream else None,
        "channels": audio_stream.get("channels") if audio_stream else None,
    }


def _probe_duration(file_path: Path) -> float | None:
    try:
        return get_audio_info(file_path).get("duration")
    except ConversionError as e:
        logger.debug(f"Could not probe duration of {file_path.name}: {e.message}")
        return None


def convert_to_mp3(
    input_path: Path,
    output_path: Path,
    bitrate: int = DEFAULT_BITRATE,
    on_progress: Callable[[int], None] | None = None
) -> ConversionResult:
    """
    Transcode an audio file to MP3.

    Args:
        input_path: Source audio file.
        output_path: Destination .mp3 (parent directories are created).
        bitrate: Target bitrate in kbps; invalid values fall back to 256.
        on_progress: Called with integer percentages (0-100) while ffmpeg
                     runs. Requires the input duration to be probeable.

    Returns:
        ConversionResult with success=True.

    Raises:
        ConversionError: If ffmpeg is missing, the input does not exist,
                         or ffmpeg exits with an error.
    """
    if not input_path.is_file():
        raise ConversionError(
            f"Input file not found: {input_path}",
            details={"file_path": str(input_path)}
        )

    bitrate = validate_bitrate(bitrate)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        FFMPEG_BINARY,
        "-y",
        "-loglevel", "error",
        "-i", str(input_path),
        "-vn",
        "-codec:a", "libmp3lame",
        "-b:a", f"{bitrate}k",
        "-progress", "pipe:1",
        "-nostats",
        str(output_path),
    ]
    logger.debug(f"FFmpeg command: {' '.join(cmd)}")

    duration = _probe_duration(input_path) if on_progress else None
    last_percent = -1

    # stderr is collected in a file, not a pipe, while stdout is streamed
    with tempfile.TemporaryFile(mode="w+") as stderr_file:
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=stderr_file,
                text=True,
            )
        except FileNotFoundError as e:
            raise ConversionError(
                "ffmpeg not found - install ffmpeg to convert audio",
                details={"file_path": str(input_path)}
            ) from e

        assert process.stdout is not None
        for line in process.stdout:
            key, _, value = line.strip().partition("=")
            # ffmpeg reports out_time_ms in microseconds
            if key == "out_time_ms" and duration and on_progress:
                try:
                    seconds = int(value) / 1_000_000
                except ValueError:
                    continue
                percent = max(0, min(100, round(seconds / duration * 100)))
                if percent != last_percent:
                    last_percent = percent
                    on_progress(percent)
            elif key == "progress" and value == "end" and on_progress and last_percent != 100:
                last_percent = 100
                on_progress(100)

        returncode = process.wait()
        stderr_file.seek(0)
        stderr = stderr_file.read()

    if returncode != 0:
        reason = stderr.strip().splitlines()[-1] if stderr.strip() else f"exit code {returncode}"
        raise ConversionError(
            f"ffmpeg failed on {input_path.name}: {reason}",
            details={"file_path": str(input_path), "returncode": returncode}
        )

    logger.debug(f"Conversion finished: {output_path}")
    return ConversionResult(success=True, input_path=input_path, output_path=output_path)


def convert_batch(
    jobs: Sequence[ConversionJob],
    bitrate: int = DEFAULT_BITRATE,
    on_file_progress: Callable[[int, int, Path], None] | None = None,
    on_overall_progress: Callable[[int, int, int], None] | None = None,
    on_result: Callable[[ConversionResult], None] | None = None
) -> list[ConversionResult]:
    """
    Convert several files one after another.

    A failed job is recorded and the batch continues.

    Args:
        jobs: Files to convert.
        bitrate: Target bitrate in kbps.
        on_file_progress: Called with (job index, percent, input path).
        on_overall_progress: Called after each job with
                             (overall percent, jobs done, total jobs).
        on_result: Called with each ConversionResult as soon as it is known.

    Returns:
        One ConversionResult per job, in order.
    """
    results: list[ConversionResult] = []
    total = len(jobs)

    for index, job in enumerate(jobs):
        progress_callback = None
        if on_file_progress:
            def progress_callback(percent: int, _index: int = index, _path: Path = job.input_path) -> None:
                on_file_progress(_index, percent, _path)

        try:
            result = convert_to_mp3(job.input_path, job.output_path, bitrate, progress_callback)
        except ConversionError as e:
            logger.error(f"Conversion failed for {job.input_path.name}: {e.message}")
            result = ConversionResult(
                success=False,
                input_path=job.input_path,
                output_path=job.output_path,
                error=e.message,
            )
        results.append(result)
        if on_result:
            on_result(result)

        if on_overall_progress:
            on_overall_progress(round((index + 1) / total * 100), index + 1, total)

    return results


def needs_conversion(file_path: Path, min_bitrate: int = 128) -> bool:
    """
    Decide whether a file should be transcoded.

    Non-MP3 files always need conversion. MP3s need it when their bitrate
    is below min_bitrate (kbps) or cannot be probed.
    """
    if file_path.suffix.lower() != ".mp3":
        return True

    try:
        info = get_audio_info(file_path)
    except ConversionError:
        return True

    bitrate = info.get("bitrate")
    if bitrate is None:
        return True
    return bitrate / 1000 < min_bitrate


def generate_output_path(input_path: Path, output_dir: Path) -> Path:
    """Return output_dir/<input stem>.mp3."""
    return output_dir / f"{input_path.stem}.mp3"


def generate_unique_output_path(
    input_path: Path,
    output_dir: Path,
    reserved: Collection[Path] = ()
) -> Path:
    """
    Return an output path that neither exists on disk nor is in reserved.

    Tries <stem>.mp3 first, then <stem>_1.mp3, <stem>_2.mp3...
    """
    candidate = generate_output_path(input_path, output_dir)
    suffix = 0
    while candidate.exists() or candidate in reserved:
        suffix += 1
        candidate = output_dir / f"{input_path.stem}_{suffix}.mp3"
    return candidate


def validate_bitrate(bitrate: Any) -> int:
    """Return bitrate if it is a supported value, otherwise 256."""
    if isinstance(bitrate, int) and not isinstance(bitrate, bool) and bitrate in VALID_BITRATES:
        return bitrate
    return DEFAULT_BITRATE


def estimate_conversion_time(file_size: int, bitrate: int) -> int:
    """
    Rough conversion time in seconds.

    About 1.5 s per MB at 256 kbps, scaled linearly with bitrate.
    Rounded half-up.
    """
    file_size_mb = file_size / (1024 * 1024)
    return int(math.floor(file_size_mb * 1.5 * (bitrate / 256) + 0.5))
