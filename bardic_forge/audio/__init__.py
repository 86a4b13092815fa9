"""
Audio module for bardic-forge.

File-facing collaborators of the library:
    - scanner: Find audio files in folders
    - metadata: Read tags, read/write the BARDIC_ID frame (mutagen)
    - converter: Transcode to MP3 (ffmpeg)
    - importer: The import pipeline
"""

from bardic_forge.audio.importer import (
    ImportFailure,
    ImportInfo,
    ImportProgress,
    ImportResults,
    LibraryImporter,
    filter_mp3_files,
    get_import_info,
    import_files,
)
from bardic_forge.audio.metadata import (
    AudioMetadata,
    read_bardic_id,
    read_metadata,
    write_bardic_id,
    write_metadata,
)
from bardic_forge.audio.scanner import AUDIO_EXTENSIONS, get_audio_files, scan_folder

__all__ = [
    "LibraryImporter",
    "import_files",
    "ImportResults",
    "ImportFailure",
    "ImportProgress",
    "ImportInfo",
    "get_import_info",
    "filter_mp3_files",
    "AudioMetadata",
    "read_metadata",
    "read_bardic_id",
    "write_bardic_id",
    "write_metadata",
    "AUDIO_EXTENSIONS",
    "scan_folder",
    "get_audio_files",
]
