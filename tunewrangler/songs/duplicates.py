"""
Duplicate detection against the existing collection

A renamed song is a duplicate when a collection song has the same artist and
title, compared case-insensitively. The album is not compared: the same track
released on a single and on an album is still the same track.

Collection files are sometimes short previews named "Title (Clip)". Before
comparing, CLIP markers are stripped from the collection song's title (and
the stripped title is kept on that song), but never from the incoming song's
title. A downloaded "Title (Clip)" is therefore not a duplicate of "Title" in
the collection, while a downloaded "Title" is a duplicate of a collection
"Title (Clip)".
"""

import os
import re
import threading
from typing import Iterable, Iterator, List, Optional

from ..utils.helpers import DEFAULT_IGNORED_FILES, list_processable_files
from ..utils.logger import get_logger
from .models import Song, SourceVariant, new_song


logger = get_logger(__name__)


CLIP_PATTERNS = (
    re.compile(r"(\(|\[).?CLIP.?(\)|\])", re.IGNORECASE),
    re.compile(r" \(CLIP\)", re.IGNORECASE),
    re.compile(r" \( CLIP \)", re.IGNORECASE),
    re.compile(r" \[CLIP\]", re.IGNORECASE),
    re.compile(r" CLIP", re.IGNORECASE),
)


def remove_clip(title: str) -> str:
    """
    Strip CLIP markers from a title

    Args:
        title: Title such as "Never Be Like You (CLIP)"

    Returns:
        Title without "(CLIP)", "( CLIP )", "[CLIP]" or a bare " CLIP", trimmed
    """
    for pattern in CLIP_PATTERNS:
        title = pattern.sub("", title)
    return title.strip()


def is_duplicate(song: Song, candidates: Iterable[Song]) -> bool:
    """
    Check a song against previously seen songs

    Args:
        song: Song being renamed
        candidates: Collection songs to compare with; CLIP markers are removed
            from their titles in place

    Returns:
        True on the first candidate with the same artist and title
    """
    artist = song.artist.upper()
    title = song.title.upper()

    for candidate in candidates:
        if candidate is song:
            continue

        if "CLIP" in candidate.title.upper():
            candidate.title = remove_clip(candidate.title)

        if candidate.artist.upper() == artist and candidate.title.upper() == title:
            return True

    return False


class MusicCache:
    """
    Session cache of the songs already in the collection

    The cache is filled once per run from the target collection and then
    grows with every song renamed during the run, so two downloads of the
    same track in one batch are caught as well. It is never persisted.

    Thread-safe: additions and lookups share one lock, so a lookup followed
    by an add is consistent when done through check_and_add().
    """

    def __init__(self, songs: Optional[Iterable[Song]] = None):
        self._songs: List[Song] = list(songs or [])
        self._lock = threading.Lock()

    @classmethod
    def from_directory(
        cls,
        directory: str,
        ignored_files: Iterable[str] = DEFAULT_IGNORED_FILES
    ) -> "MusicCache":
        """
        Build a cache from the files of a collection directory

        Args:
            directory: Collection directory (not recursive)
            ignored_files: Exact file names to skip

        Returns:
            MusicCache holding one LOCALLY_NAMED song per file

        Raises:
            FilePathError: If the directory does not exist
        """
        names = list_processable_files(directory, ignored_files)
        songs = [new_song(name, str(directory), SourceVariant.LOCALLY_NAMED) for name in names]
        logger.debug(f"Cached {len(songs)} songs from {os.fspath(directory)}")
        return cls(songs)

    def add(self, song: Song) -> None:
        with self._lock:
            self._songs.append(song)

    def is_duplicate(self, song: Song) -> bool:
        with self._lock:
            return is_duplicate(song, self._songs)

    def check_and_add(self, song: Song) -> bool:
        """
        Mark the song as duplicate or add it to the cache in one step

        Returns:
            True if the song was a duplicate and was not added
        """
        with self._lock:
            song.duplicate = is_duplicate(song, self._songs)
            if not song.duplicate:
                self._songs.append(song)
            return song.duplicate

    def __len__(self) -> int:
        with self._lock:
            return len(self._songs)

    def __iter__(self) -> Iterator[Song]:
        with self._lock:
            return iter(list(self._songs))
