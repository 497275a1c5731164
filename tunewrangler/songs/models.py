"""
Song entity and filename tokenizer

A Song is built from a base filename and the directory it lives in. The
filename is tokenized on the literal separator " - " and the positional
accessors (grab_first, grab_second, grab_third, grab_last) feed the field
extraction strategy of the song's SourceVariant:

    LOCALLY_NAMED       Files already in the collection, "Artist[ - Album] - Title.ext"
    FRESHLY_DOWNLOADED  Raw downloads, "Artist - Title" or "Album - Artist - Title"
    PLAYLIST_IMPORT     Playlist exports, "Artist - Title"
    FORMATTED           Rating-suffixed names, "Artist - Album - Title - 5.ext"

Songs are mutable: the normalization rules in tunewrangler.songs.rules edit
the filename and the fields in place and return the same instance so calls can
be chained:

    song = new_song("Excision - Robots (Figure Remix).mp3", downloaded_dir)
    song.remove_bad_characters().check_remix()

Nothing in this module touches the filesystem.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..utils.exceptions import NoArtistFoundError
from . import rules


SEPARATOR = " - "
JOINER = " x "


class SourceVariant(Enum):
    """
    Where a filename came from, which decides how its fields are extracted

    Values:
        LOCALLY_NAMED: Already renamed file inside the collection or cache
        FRESHLY_DOWNLOADED: Untouched download from a store or a video site
        PLAYLIST_IMPORT: Entry of an exported playlist
        FORMATTED: Collection file carrying a trailing rating segment
    """
    LOCALLY_NAMED = "locally_named"
    FRESHLY_DOWNLOADED = "freshly_downloaded"
    PLAYLIST_IMPORT = "playlist_import"
    FORMATTED = "formatted"


@dataclass
class Song:
    """
    A music file being parsed, normalized and renamed

    The extension is taken once from the filename given at construction and is
    never reassigned; rules that truncate the filename re-append it. dash_count
    always reflects the current filename and is recomputed by every rule that
    edits the filename.

    Attributes:
        filename: Current base filename including its extension
        directory: Directory the file was found in
        full_filename: directory joined with the filename given at construction
        extension: Dot-prefixed extension, empty when the file has none
        artist: Artist field, collaborators joined with " x "
        album: Album field; for remixes this holds the original artist
        title: Title field
        dash_count: Number of " - " separators in the current filename
        remix: True once a remix bracket moved the remixer into artist
        changed: True once any rule modified the filename or a field
        duplicate: True when the song already exists in the session cache
        final_filename: Composed target name, set by compose_final_name()
        rating: Trailing numeric segment of rating-suffixed names, 0 otherwise
        variant: Source variant the fields were extracted with
        tags: Embedded tags for tag-sourced variants (Beatport, iTunes)
    """
    filename: str
    directory: str
    variant: SourceVariant = SourceVariant.LOCALLY_NAMED
    artist: str = ""
    album: str = ""
    title: str = ""
    full_filename: str = ""
    extension: str = ""
    dash_count: int = 0
    remix: bool = False
    changed: bool = False
    duplicate: bool = False
    final_filename: str = ""
    rating: int = 0
    tags: Optional[Dict[str, str]] = field(default=None, repr=False)

    def __post_init__(self):
        self.full_filename = os.path.join(self.directory, self.filename)
        self.extension = os.path.splitext(self.filename)[1]
        self.dash_count = self.get_dash_count()

    # Tokenizer

    def get_dash_count(self) -> int:
        """Count the " - " separators in the current filename"""
        return len(self.filename.split(SEPARATOR)) - 1

    def grab_first(self) -> str:
        """Text before the first separator, or the whole filename without one"""
        return self.filename.split(SEPARATOR)[0].strip()

    def grab_second(self) -> str:
        """
        Text between the first and second separator

        YouTube auto-generated uploads are named "Artist - Topic - Title"; in
        that case the artist from the first segment is returned instead, unless
        the upload is a "Various Artists" compilation.

        Returns:
            Trimmed second segment, or "" when the filename has no separator
        """
        parts = self.filename.split(SEPARATOR)
        second = parts[1].strip() if len(parts) > 1 else ""

        if second == "Topic" and "Various Artists" not in self.filename:
            second = self.grab_first()

        return second

    def grab_third(self) -> Optional[str]:
        """Third segment, trimmed, or None when the filename has fewer than two separators"""
        parts = self.filename.split(SEPARATOR)
        return parts[2].strip() if len(parts) > 2 else None

    def grab_last(self) -> str:
        """
        Text between the last separator and the final dot

        Without a separator the whole name before the extension is returned.
        Without a dot the text runs to the end of the filename.
        """
        separator_index = self.filename.rfind(SEPARATOR)
        start = separator_index + len(SEPARATOR) if separator_index != -1 else 0

        dot_index = self.filename.rfind(".")
        if dot_index == -1:
            return self.filename[start:].strip()
        return self.filename[start:dot_index].strip()

    def split_artist(self) -> List[str]:
        """Split the artist field into individual artists on the " x " joiner"""
        return self.artist.split(JOINER)

    # Rule chaining

    def remove_bad_characters(self) -> "Song":
        return rules.remove_bad_characters(self)

    def check_remix(self, keywords=rules.REMIX_KEYWORDS) -> "Song":
        return rules.check_remix(self, keywords)

    def check_with(self) -> "Song":
        return rules.check_with(self)

    def check_feat(self) -> "Song":
        return rules.check_feat(self)

    def remove_and(self, *field_names: str) -> "Song":
        return rules.remove_and(self, *field_names)

    def last_check(self, **exclusions) -> "Song":
        return rules.last_check(self, **exclusions)

    def strip_track_number(self) -> "Song":
        return rules.strip_track_number(self)


def _strip_extension(song: Song, text: str) -> str:
    if song.extension and song.extension in text:
        return text[:text.rfind(song.extension)]
    return text


def _parse_rating(segment: str) -> int:
    return int(segment) if segment.isdigit() else 0


def _extract_locally_named(song: Song) -> None:
    dash_count = song.get_dash_count()
    if dash_count == 1:
        song.artist = song.grab_first()
        song.title = song.grab_second()
    elif dash_count > 1:
        song.artist = song.grab_first()
        song.album = song.grab_second()
        song.title = song.grab_last()

    song.title = _strip_extension(song, song.title)
    song.rating = _parse_rating(song.grab_last())


def _extract_freshly_downloaded(song: Song) -> None:
    if song.get_dash_count() == 0:
        rules.check_remix(song)
        rules.check_feat(song)
        rules.last_check(song)
        rules.remove_and(song, "artist", "album")

        if not song.artist:
            raise NoArtistFoundError(song.filename)

        song.title = song.filename[:-len(song.extension)] if song.extension else song.filename

    dash_count = song.get_dash_count()
    if dash_count == 1:
        song.artist = song.grab_first()
        song.title = song.grab_second()
    elif dash_count == 2:
        song.album = song.grab_first()
        song.artist = song.grab_second()
        song.title = song.grab_last()


def _extract_playlist_import(song: Song) -> None:
    song.artist = song.grab_first()
    song.title = _strip_extension(song, song.grab_second())


def _extract_formatted(song: Song) -> None:
    song.artist = song.grab_first()
    song.album = song.grab_second()
    song.title = _strip_extension(song, song.grab_third() or "")
    song.rating = _parse_rating(song.grab_last())


# Field extraction strategy per source variant
EXTRACTORS: Dict[SourceVariant, Callable[[Song], None]] = {
    SourceVariant.LOCALLY_NAMED: _extract_locally_named,
    SourceVariant.FRESHLY_DOWNLOADED: _extract_freshly_downloaded,
    SourceVariant.PLAYLIST_IMPORT: _extract_playlist_import,
    SourceVariant.FORMATTED: _extract_formatted,
}


def new_song(
    filename: str,
    directory: str,
    variant: SourceVariant = SourceVariant.LOCALLY_NAMED
) -> Song:
    """
    Build a Song and extract its fields for the given source variant

    Args:
        filename: Base filename including its extension
        directory: Directory the file lives in
        variant: Source variant deciding the extraction order

    Returns:
        Song with artist, album, title (and rating) populated; fields the
        variant does not set stay ""

    Raises:
        NoArtistFoundError: A FRESHLY_DOWNLOADED filename without any separator
            for which neither remix nor featuring detection found an artist
    """
    song = Song(filename, directory, variant=variant)
    EXTRACTORS[variant](song)
    return song
