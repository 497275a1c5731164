"""
Audio transfer: retagging and lossless conversion through ffmpeg

Renamed songs leave the download folder in one of two ways:

- **MP3** files are retagged with a stream copy (`-c:a copy`), so the audio
  bitstream is never re-encoded and there is no generation loss.
- **Everything else** (FLAC, WAV, M4A, OGG, OPUS...) is converted to AIFF,
  keeping the source bit depth (16 or 24 bit, detected with pydub's ffprobe
  wrapper), because the DJ software the collection feeds reads AIFF tags
  reliably.

Both paths write title, artist, album and album_artist tags from the parsed
song and keep every other tag of the source (`-map_metadata 0`). When the
source metadata is corrupt ffmpeg refuses to copy it; the MP3 path then
retries without the metadata copy.

Concurrency:
    Batch processors call transfer() from worker threads. A bounded semaphore
    shared by every AudioProcessor caps the number of ffmpeg processes
    running at once (conversion.max_concurrent_processes, 10 by default).

Usage:
    processor = get_audio_processor()
    target = processor.transfer(song, rename_dir, remove_source=True)
"""

import os
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Union

from pydub.utils import mediainfo

from ..config.settings import get_settings
from ..songs.models import Song
from ..utils.exceptions import AudioProcessingError, FilePathError
from ..utils.helpers import replace_extension
from ..utils.logger import get_logger


# Shared by every processor instance; created on first use from the settings
_process_semaphore: Optional[threading.BoundedSemaphore] = None
_semaphore_lock = threading.Lock()


def get_process_semaphore(limit: Optional[int] = None) -> threading.BoundedSemaphore:
    """
    Get the semaphore bounding concurrent ffmpeg processes

    Args:
        limit: Process limit used when the semaphore is created; defaults to
            conversion.max_concurrent_processes

    Returns:
        The global BoundedSemaphore
    """
    global _process_semaphore
    with _semaphore_lock:
        if _process_semaphore is None:
            if limit is None:
                limit = get_settings().conversion.max_concurrent_processes
            _process_semaphore = threading.BoundedSemaphore(limit)
        return _process_semaphore


class AudioProcessor:
    """
    ffmpeg front end for moving renamed songs into the collection

    All methods raise AudioProcessingError when ffmpeg fails, is missing or
    times out; the error details carry the ffmpeg stderr output.
    """

    def __init__(self):
        """Initialize the processor from the conversion settings"""
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        self.timeout = self.settings.conversion.timeout
        self.id3_version = self.settings.conversion.id3_version
        self.semaphore = get_process_semaphore(self.settings.conversion.max_concurrent_processes)

    def detect_bit_depth(self, file_path: Union[str, Path]) -> int:
        """
        Detect the bit depth of the first audio stream

        Args:
            file_path: Audio file to probe

        Returns:
            24 for 24-bit or deeper sources, otherwise 16 (also when probing fails)
        """
        try:
            info = mediainfo(str(file_path))
        except (OSError, ValueError) as e:
            self.logger.debug(f"Bit depth probe failed for {Path(file_path).name}: {e}")
            return 16

        for key in ('bits_per_raw_sample', 'bits_per_sample'):
            value = str(info.get(key, '')).strip()
            if value.isdigit() and int(value) > 0:
                return 24 if int(value) >= 24 else 16

        return 16

    def _metadata_args(self, song: Song) -> List[str]:
        return [
            '-metadata', f'title={song.title}',
            '-metadata', f'artist={song.artist}',
            '-metadata', f'album={song.album}',
            '-metadata', f'album_artist={song.artist}',
        ]

    def _run_ffmpeg(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """
        Run an ffmpeg command with output capture and timeout protection

        Raises:
            AudioProcessingError: If ffmpeg is not installed or times out
        """
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise AudioProcessingError(
                f"ffmpeg timed out after {self.timeout}s",
                details={'command': cmd}
            ) from e
        except FileNotFoundError as e:
            raise AudioProcessingError(
                "ffmpeg not found - install ffmpeg to convert and retag audio",
                details={'command': cmd}
            ) from e

    def convert_to_aiff(self, song: Song, output_file: Union[str, Path]) -> Path:
        """
        Convert a song to AIFF keeping its bit depth and merging its tags

        Args:
            song: Song whose full_filename is converted
            output_file: Target .aiff path

        Returns:
            Path of the written file

        Raises:
            AudioProcessingError: If the conversion fails
        """
        bit_depth = self.detect_bit_depth(song.full_filename)
        codec = 'pcm_s24be' if bit_depth == 24 else 'pcm_s16be'
        self.logger.info(f"Converting to {bit_depth}-bit AIFF: {song.filename}")

        cmd = [
            'ffmpeg',
            '-i', song.full_filename,
            '-c:a', codec,
            '-map_metadata', '0',
            *self._metadata_args(song),
            '-f', 'aiff',
            '-y',
            str(output_file),
        ]

        result = self._run_ffmpeg(cmd)
        if result.returncode != 0:
            raise AudioProcessingError(
                f"FFmpeg conversion failed for {song.filename}",
                details={'stderr': result.stderr, 'output': str(output_file)}
            )

        self.logger.info(f"Conversion complete: {output_file}")
        return Path(output_file)

    def retag_mp3(self, song: Song, output_file: Union[str, Path]) -> Path:
        """
        Retag an MP3 without re-encoding the audio stream

        Args:
            song: Song whose full_filename is retagged
            output_file: Target .mp3 path

        Returns:
            Path of the written file

        Raises:
            AudioProcessingError: If both the retag and the retry fail
        """
        self.logger.info(f"Retagging MP3 (no re-encode): {song.filename}")

        base_cmd = ['ffmpeg', '-i', song.full_filename, '-c:a', 'copy']
        tag_args = ['-id3v2_version', str(self.id3_version), *self._metadata_args(song), '-y', str(output_file)]

        result = self._run_ffmpeg([*base_cmd, '-map_metadata', '0', *tag_args])
        if result.returncode == 0:
            self.logger.info(f"Retag complete: {output_file}")
            return Path(output_file)

        # Corrupt source metadata makes the copy fail; retry with our tags only
        self.logger.warning(f"First retag attempt failed for {song.filename}, retrying without metadata copy")
        result = self._run_ffmpeg([*base_cmd, *tag_args])
        if result.returncode != 0:
            raise AudioProcessingError(
                f"FFmpeg retag failed for {song.filename}",
                details={'stderr': result.stderr, 'output': str(output_file)}
            )

        self.logger.info(f"Retag complete (without original metadata): {output_file}")
        return Path(output_file)

    def transfer(self, song: Song, dest_dir: Union[str, Path], remove_source: bool = False) -> Path:
        """
        Write a renamed song into a destination folder

        MP3 files are retagged under their final filename; any other format is
        converted to AIFF under the final filename with an .aiff extension.

        Args:
            song: Song with final_filename set
            dest_dir: Destination folder
            remove_source: Delete the source file once the new file is written

        Returns:
            Path of the written file

        Raises:
            FilePathError: If the song has no final filename or the source is missing
            AudioProcessingError: If ffmpeg fails
        """
        if not song.final_filename:
            raise FilePathError(f"No final filename composed for {song.filename}")
        if not Path(song.full_filename).exists():
            raise FilePathError(f"Source file missing: {song.full_filename}", details={'path': song.full_filename})

        dest_dir = Path(dest_dir).expanduser()

        with self.semaphore:
            if song.extension.lower() == '.mp3':
                output = self.retag_mp3(song, dest_dir / song.final_filename)
            else:
                aiff_name = replace_extension(song.final_filename, song.extension, '.aiff')
                output = self.convert_to_aiff(song, dest_dir / aiff_name)

            if remove_source:
                os.remove(song.full_filename)
                self.logger.debug(f"Removed source: {song.full_filename}")

        return output

    def convert_local(self, song: Song, dest_dir: Union[str, Path]) -> Path:
        """
        Convert a collection file to AIFF in place of the original

        The AIFF keeps the source filename (only the extension changes) and the
        source file is removed after a successful conversion.

        Args:
            song: LOCALLY_NAMED song to convert
            dest_dir: Destination folder

        Returns:
            Path of the written file

        Raises:
            AudioProcessingError: If ffmpeg fails; the source is left in place
        """
        output = Path(dest_dir).expanduser() / replace_extension(song.filename, song.extension, '.aiff')

        with self.semaphore:
            self.convert_to_aiff(song, output)
            os.remove(song.full_filename)

        return output


# Global processor instance for singleton pattern implementation
_processor_instance: Optional[AudioProcessor] = None


def get_audio_processor() -> AudioProcessor:
    """
    Get the global audio processor instance

    Returns:
        Global AudioProcessor configured from the current settings
    """
    global _processor_instance
    if not _processor_instance:
        _processor_instance = AudioProcessor()
    return _processor_instance
