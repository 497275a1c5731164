"""
FLAC to AIFF conversion of the collection

DJ software reads AIFF tags reliably but not FLAC Vorbis comments, so FLAC
files in the collection are converted to AIFF next to where they were, keeping
their bit depth and getting tags written from their (already canonical)
filenames. Conversions run on a small thread pool; the AudioProcessor
semaphore still bounds ffmpeg processes across the whole application.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..audio.processor import AudioProcessor, get_audio_processor
from ..songs.models import Song, SourceVariant, new_song
from ..utils.exceptions import TuneWranglerError, log_error
from ..utils.helpers import DEFAULT_IGNORED_FILES, backup_file, list_processable_files
from ..utils.logger import create_operation_logger, get_logger, log_performance


logger = get_logger(__name__)


@dataclass
class ConversionResult:
    """Files found, converted and failed during a conversion run"""
    found: List[str] = field(default_factory=list)
    converted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return f"Total Count: {len(self.found)} | Converted: {len(self.converted)} | Failed: {len(self.failed)}"


def find_flacs(source_dir: Union[str, Path], ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES) -> List[Song]:
    """
    Collect the FLAC files of a folder as LOCALLY_NAMED songs

    Args:
        source_dir: Folder to scan (not recursive)
        ignored_files: Exact file names to skip

    Returns:
        Songs for every file with a .flac extension
    """
    directory = str(Path(source_dir).expanduser())
    songs = []
    for name in list_processable_files(directory, ignored_files):
        song = new_song(name, directory, SourceVariant.LOCALLY_NAMED)
        if song.extension.lower() == '.flac':
            songs.append(song)
    return songs


@log_performance
def convert_flacs(
    source_dir: Union[str, Path],
    dest_dir: Union[str, Path],
    workers: int = 4,
    backup_dir: Optional[Union[str, Path]] = None,
    dry_run: bool = False,
    audio_processor: Optional[AudioProcessor] = None
) -> ConversionResult:
    """
    Convert every FLAC file of a folder to AIFF

    Args:
        source_dir: Folder holding the FLAC files
        dest_dir: Folder receiving the AIFF files (usually the same folder)
        workers: Concurrent conversions
        backup_dir: Folder receiving a copy of every FLAC before conversion
        dry_run: Only list the files that would be converted
        audio_processor: Conversion collaborator, defaults to the global one

    Returns:
        ConversionResult listing found, converted and failed files

    Raises:
        FilePathError: If the source folder does not exist
    """
    result = ConversionResult()
    songs = find_flacs(source_dir)
    result.found = [song.filename for song in songs]

    operation = create_operation_logger(__name__, "FLAC conversion", "Converting")
    operation.start(f"🎚️ Found {len(songs)} FLAC files to process")

    if dry_run or not songs:
        for song in songs:
            logger.console_info(f"Processing: {song.filename}")
        operation.complete(f"✅ {result.summary}")
        return result

    if backup_dir:
        for song in songs:
            backup_file(song.directory, backup_dir, song.filename)

    processor = audio_processor or get_audio_processor()

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures = {pool.submit(processor.convert_local, song, dest_dir): song for song in songs}

        for index, future in enumerate(as_completed(futures), 1):
            song = futures[future]
            try:
                future.result()
                result.converted.append(song.filename)
            except TuneWranglerError as e:
                log_error(logger, e, {'file': song.filename})
                result.failed.append(song.filename)
            except OSError as e:
                logger.error(f"Conversion failed for {song.filename}: {e}")
                result.failed.append(song.filename)

            operation.progress(song.filename, index, len(songs))

    operation.complete(f"✅ {result.summary}")
    return result
