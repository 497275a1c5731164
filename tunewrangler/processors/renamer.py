"""
Batch renaming of downloaded music

Incoming names come in every shape ("Album - Artist - Title", "Artist - Title
(Someone Remix)", "01 Title" with the real data in the tags); outgoing names
always follow "Artist[ - Album] - Title.ext". One MusicRenamer handles every
download source through a SourceProfile:

    DOWNLOADED  Loose downloads, fields from the filename
    BANDCAMP    Album downloads, "Artist - Album - 01 Title"
    BEATPORT    Store downloads, fields from the tags
    ITUNES      iTunes purchases (recursive), fields from the tags

Runs are dry by default: every composed name is printed and nothing on disk
changes. With move enabled each file is first copied to the backup folder and
then retagged or converted into the rename folder.
"""

import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..audio.metadata import TagManager, get_tag_manager
from ..audio.processor import AudioProcessor, get_audio_processor
from ..config.settings import get_settings
from ..songs.duplicates import MusicCache
from ..songs.models import Song, SourceVariant, new_song
from ..songs.naming import compose_final_name, fix_itunes_labeling
from ..songs.rules import DEFAULT_RULES, Rule, RuleChain, configure_rules, remove_and
from ..songs.unicode import normalize_fields
from ..utils.exceptions import NoArtistFoundError, TuneWranglerError, log_error
from ..utils.helpers import (
    DEFAULT_IGNORED_FILES,
    backup_file,
    empty_directory,
    format_duration,
    is_processable,
    list_processable_files,
)
from ..utils.logger import create_operation_logger, get_logger, log_with_break


logger = get_logger(__name__)

FIELD_CLEANUP = ("check_feat", "remove_and", "last_check")


class SourceProfile(Enum):
    """Download source a rename run processes"""
    DOWNLOADED = "downloaded"
    BANDCAMP = "bandcamp"
    BEATPORT = "beatport"
    ITUNES = "itunes"


@dataclass
class RenameResult:
    """
    Outcome of a rename run

    Attributes:
        processed: Number of files inspected
        renamed: Composed filenames of the renamed songs
        duplicates: Composed filenames rejected as duplicates
        skipped: Source names skipped (unsupported or unparseable)
        errors: Source names whose transfer failed
        duration: Run time in seconds
    """
    processed: int = 0
    renamed: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def summary(self) -> str:
        return (
            f"Total Count: {len(self.renamed)} | Duplicates: {len(self.duplicates)} | "
            f"Skipped: {len(self.skipped)} | Errors: {len(self.errors)} | "
            f"Time: {format_duration(self.duration)}"
        )


def _cleanup_chain(rules: Dict[str, Rule]) -> RuleChain:
    return RuleChain.from_names(rules, *FIELD_CLEANUP)


def process_downloaded(song: Song, rules: Dict[str, Rule] = DEFAULT_RULES) -> Song:
    """
    Parse a loose download, typically "Album - Artist - Title (Remix)"

    The artist is the first segment of two-segment names and the second segment
    otherwise. For remixes the remixer becomes the artist and the credited
    artist moves to album.

    Args:
        song: FRESHLY_DOWNLOADED song with at least one separator
        rules: Configured rule mapping

    Returns:
        The same song with its fields parsed and cleaned
    """
    rules["remove_bad_characters"](song)
    rules["check_remix"](song)

    if song.remix:
        song.album = song.grab_first() if song.dash_count == 1 else song.grab_second()
        remove_and(song, "album")
    else:
        song.artist = song.grab_first() if song.dash_count == 1 else song.grab_second()

    rules["check_with"](song)

    if not song.album and song.dash_count > 1:
        song.album = song.grab_first()

    song.title = song.grab_last()

    return _cleanup_chain(rules).apply(song)


def process_bandcamp(song: Song, rules: Dict[str, Rule] = DEFAULT_RULES) -> Song:
    """
    Parse a Bandcamp album track, "Artist - Album - 01 Title"

    Differs from loose downloads in that the artist always comes first, the
    album second, and the track number is stripped from the title.

    Args:
        song: LOCALLY_NAMED song with at least one separator
        rules: Configured rule mapping

    Returns:
        The same song with its fields parsed and cleaned
    """
    rules["remove_bad_characters"](song)
    rules["check_remix"](song)

    if song.remix:
        song.album = song.grab_first() if song.dash_count == 1 else song.grab_second()
        remove_and(song, "album")
    else:
        song.artist = song.grab_first()

    rules["check_with"](song)

    if not song.album and song.dash_count > 1:
        song.album = song.grab_second()

    song.title = song.grab_last()
    rules["strip_track_number"](song)

    return _cleanup_chain(rules).apply(song)


def process_beatport(song: Song, tags: Dict[str, str], rules: Dict[str, Rule] = DEFAULT_RULES) -> Song:
    """
    Fill a Beatport download from its tags and clean the fields

    Args:
        song: Song built from the Beatport filename
        tags: Tags read from the file
        rules: Configured rule mapping

    Returns:
        The same song with its fields cleaned
    """
    song.tags = dict(tags)
    song.title = tags.get('title', '')
    song.artist = tags.get('artist', '')
    song.album = tags.get('album', '')

    rules["remove_bad_characters"](song)
    normalize_fields(song)

    return _cleanup_chain(rules).apply(song)


def _remix_title(song: Song) -> str:
    # iTunes names remix tracks "01 Title (Someone Remix).m4a"; after the
    # remix bracket is cut only "01 Title.m4a" is left
    stem = song.filename[:-len(song.extension)] if song.extension else song.filename
    return stem[3:] if stem[:2].isdigit() and stem[2:3] == " " else ""


def process_itunes(song: Song, tags: Dict[str, str], rules: Dict[str, Rule] = DEFAULT_RULES) -> Song:
    """
    Fill an iTunes purchase from its tags and clean the fields

    Tags lose iTunes release suffixes (" - Single", " - EP") and "A / B"
    artist lists become "A x B".
    An album equal to the title is dropped.

    Args:
        song: Song built from the iTunes filename ("01 Title.m4a")
        tags: Tags read from the file
        rules: Configured rule mapping

    Returns:
        The same song with its fields cleaned
    """
    song.tags = dict(tags)
    tag_artist = fix_itunes_labeling(tags.get('artist', ''))
    song.album = fix_itunes_labeling(tags.get('album', ''))

    rules["check_remix"](song)

    if song.remix:
        song.album = tag_artist
        song.title = _remix_title(song)
        remove_and(song, "album")
    else:
        song.artist = tag_artist

    rules["check_with"](song)

    song.title = fix_itunes_labeling(song.title or tags.get('title', ''))

    rules["remove_bad_characters"](song)
    normalize_fields(song)
    _cleanup_chain(rules).apply(song)

    if song.title == song.album:
        song.album = ""

    return song


class MusicRenamer:
    """
    Rename, deduplicate and optionally move the files of one download source

    The session cache is built from the collection folder when the run starts
    and grows with every renamed song, so the same track downloaded twice in
    one batch is only renamed once.
    """

    def __init__(
        self,
        profile: SourceProfile,
        source_dir: str,
        cache_dir: str,
        move_dir: str,
        backup_dir: str,
        move: bool = False,
        clear_backup: bool = True,
        ignore_duplicates: bool = False,
        rules: Optional[Dict[str, Rule]] = None,
        skip_extensions: Iterable[str] = ('.m3u', '.zip'),
        ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES,
        workers: int = 4,
        tag_manager: Optional[TagManager] = None,
        audio_processor: Optional[AudioProcessor] = None
    ):
        """
        Initialize a rename run

        Args:
            profile: Download source to process
            source_dir: Folder holding the downloads
            cache_dir: Collection folder used for duplicate detection
            move_dir: Destination of renamed files
            backup_dir: Folder receiving a copy of every moved source file
            move: Actually back up and transfer files; dry run otherwise
            clear_backup: Empty the backup folder before the run and remove
                sources after transfer (only with move)
            ignore_duplicates: Skip duplicate detection
            rules: Configured rule mapping, defaults to DEFAULT_RULES
            skip_extensions: Extensions that are never processed
            ignored_files: Exact file names that are never processed
            workers: Concurrent transfers when moving
            tag_manager: Tag reader for tag-sourced profiles
            audio_processor: Transfer collaborator used when moving
        """
        self.profile = profile
        self.source_dir = Path(source_dir).expanduser()
        self.cache_dir = Path(cache_dir).expanduser()
        self.move_dir = Path(move_dir).expanduser()
        self.backup_dir = Path(backup_dir).expanduser()
        self.move = move
        self.clear_backup = clear_backup
        self.ignore_duplicates = ignore_duplicates
        self.rules = rules or DEFAULT_RULES
        self.skip_extensions = {extension.lower() for extension in skip_extensions}
        self.ignored_files = tuple(ignored_files)
        self.workers = workers
        self._tag_manager = tag_manager
        self._audio_processor = audio_processor

    @classmethod
    def from_settings(
        cls,
        profile: SourceProfile,
        move: bool = False,
        clear_backup: Optional[bool] = None,
        ignore_duplicates: bool = False
    ) -> "MusicRenamer":
        """
        Build a renamer from the application settings

        Args:
            profile: Download source to process
            move: Back up and transfer files
            clear_backup: Override of processing.clear_backup
            ignore_duplicates: Skip duplicate detection

        Returns:
            Configured MusicRenamer
        """
        settings = get_settings()
        processing = settings.processing

        return cls(
            profile=profile,
            source_dir=settings.get_path(profile.value),
            cache_dir=settings.get_path('dj_music'),
            move_dir=settings.get_path('rename'),
            backup_dir=settings.get_path('backup'),
            move=move,
            clear_backup=processing.clear_backup if clear_backup is None else clear_backup,
            ignore_duplicates=ignore_duplicates,
            rules=configure_rules(
                remix_keywords=processing.remix_keywords,
                title_exclusions=processing.title_exclusions,
                artist_exclusions=processing.artist_exclusions,
                album_exclusions=processing.album_exclusions,
            ),
            skip_extensions=processing.skip_extensions,
            ignored_files=processing.ignored_files,
            workers=settings.conversion.max_concurrent_processes,
        )

    @property
    def tag_manager(self) -> TagManager:
        if self._tag_manager is None:
            self._tag_manager = get_tag_manager()
        return self._tag_manager

    @property
    def audio_processor(self) -> AudioProcessor:
        if self._audio_processor is None:
            self._audio_processor = get_audio_processor()
        return self._audio_processor

    def list_entries(self) -> List[Tuple[str, str]]:
        """
        List the (directory, filename) pairs to process

        iTunes purchases are nested in artist/album folders and are walked
        recursively; every other source is a flat folder.
        """
        if self.profile is SourceProfile.ITUNES:
            return [
                (str(path.parent), path.name)
                for path in sorted(self.source_dir.rglob('*'))
                if is_processable(path, self.ignored_files)
            ]

        return [
            (str(self.source_dir), name)
            for name in list_processable_files(self.source_dir, self.ignored_files)
        ]

    def build_song(self, directory: str, name: str) -> Optional[Song]:
        """
        Parse one file according to the source profile

        Returns:
            The parsed song, or None when the file is not a song for this profile

        Raises:
            NoArtistFoundError: For loose downloads without any artist
        """
        if self.profile is SourceProfile.DOWNLOADED:
            song = new_song(name, directory, SourceVariant.FRESHLY_DOWNLOADED)
            if song.dash_count > 0:
                process_downloaded(song, self.rules)
            return song

        if self.profile is SourceProfile.BANDCAMP:
            song = new_song(name, directory, SourceVariant.LOCALLY_NAMED)
            if song.dash_count < 1:
                return None
            return process_bandcamp(song, self.rules)

        song = Song(name, directory, variant=SourceVariant.FRESHLY_DOWNLOADED)
        tags = self.tag_manager.read_tags(song.full_filename) or {}

        if self.profile is SourceProfile.BEATPORT:
            return process_beatport(song, tags, self.rules)
        return process_itunes(song, tags, self.rules)

    def _should_skip(self, name: str) -> bool:
        extension = os.path.splitext(name)[1].lower()
        return not extension or extension in self.skip_extensions

    def process_file(
        self,
        directory: str,
        name: str,
        cache: MusicCache,
        result: RenameResult
    ) -> Optional[Song]:
        """
        Parse, compose and deduplicate one file

        Returns:
            The renamed song, or None when it was skipped or a duplicate
        """
        result.processed += 1
        logger.info(f"Processing: {name}")

        if self._should_skip(name):
            log_with_break(logger, f"Skipping: {name}")
            result.skipped.append(name)
            return None

        try:
            song = self.build_song(directory, name)
        except NoArtistFoundError as e:
            log_with_break(logger, f"Skipping: {name} - {e}")
            result.skipped.append(name)
            return None

        if song is None:
            log_with_break(logger, f"Skipping: {name}")
            result.skipped.append(name)
            return None

        compose_final_name(song, optional_album=self.profile is SourceProfile.ITUNES)

        if self.ignore_duplicates:
            cache.add(song)
        elif cache.check_and_add(song):
            log_with_break(logger, f"***Duplicate Song: {song.final_filename}***")
            result.duplicates.append(song.final_filename)
            return None

        log_with_break(logger, song.final_filename)
        result.renamed.append(song.final_filename)
        return song

    def _transfer(self, song: Song) -> None:
        merged = self.tag_manager.merge_tags(song)
        logger.debug(f"Merged tags for {song.final_filename}: {merged}")

        backup_file(song.directory, self.backup_dir, os.path.basename(song.full_filename))
        output = self.audio_processor.transfer(song, self.move_dir, remove_source=self.clear_backup)

        # ffmpeg drops ID3 frames on some AIFF writes; set the parsed fields again
        if not self.tag_manager.write_tags(output, song.title, song.artist, song.album):
            logger.warning(f"Tags not written: {output.name}")

    def run(self) -> RenameResult:
        """
        Process every file of the source folder

        Returns:
            RenameResult with the renamed, duplicate, skipped and failed files

        Raises:
            FilePathError: If the source or collection folder does not exist
        """
        start_time = time.time()
        result = RenameResult()
        operation = create_operation_logger(__name__, f"Rename {self.profile.value}", "Renaming")

        cache = MusicCache.from_directory(str(self.cache_dir), self.ignored_files)
        entries = self.list_entries()

        if self.move and self.clear_backup:
            removed = empty_directory(self.backup_dir)
            logger.debug(f"Cleared {removed} entries from {self.backup_dir}")

        operation.start(f"🎵 Renaming {len(entries)} files from {self.source_dir}")

        pending: List[Tuple[str, Future]] = []
        with ThreadPoolExecutor(max_workers=max(1, self.workers)) as pool:
            for index, (directory, name) in enumerate(entries, 1):
                song = self.process_file(directory, name, cache, result)
                operation.progress(name, index, len(entries))

                if song is not None and self.move:
                    pending.append((name, pool.submit(self._transfer, song)))

            for name, future in pending:
                try:
                    future.result()
                except TuneWranglerError as e:
                    log_error(logger, e, {'file': name})
                    result.errors.append(name)
                except OSError as e:
                    logger.error(f"Transfer failed for {name}: {e}")
                    result.errors.append(name)

        result.duration = time.time() - start_time
        operation.complete(f"✅ {result.summary}")
        return result
