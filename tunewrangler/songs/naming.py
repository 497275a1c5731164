"""
Final filename composition and joiner helpers

The collection uses one canonical name grammar:

    Artist[ - Album] - Title.ext

with collaborators joined by " x " and no " - " inside any field. Composing
a name from parsed fields and tokenizing it again as a LOCALLY_NAMED song
yields the same fields.
"""

import re

from .models import SEPARATOR, JOINER, Song


EDGE_DASHES = re.compile(r"^(?:-+\s*)+|(?:\s*-+)+$")


def _flatten(value: str) -> str:
    """Make a field safe to place between separators"""
    while SEPARATOR in value:
        value = value.replace(SEPARATOR, " ")
    return EDGE_DASHES.sub("", value).strip()


def compose_final_name(song: Song, optional_album: bool = False) -> str:
    """
    Compose the target filename of a song and store it on the song

    A song parsed from a single-separator name only gets an album segment when
    an album was found (remixes, featured credits). Every other song always
    gets one, so a missing album produces "Artist -  - Title.ext" and the
    name keeps three segments.

    Args:
        song: Song with its fields normalized
        optional_album: Leave out an empty album segment whatever the
            separator count (tag-sourced songs)

    Returns:
        The composed filename, also set as song.final_filename
    """
    artist = _flatten(song.artist)
    album = _flatten(song.album)
    title = _flatten(song.title)

    if (song.dash_count == 1 or optional_album) and not album:
        final_filename = f"{artist}{SEPARATOR}{title}{song.extension}"
    else:
        final_filename = f"{artist}{SEPARATOR}{album}{SEPARATOR}{title}{song.extension}"

    song.final_filename = final_filename
    return final_filename


def fix_itunes_labeling(value: str) -> str:
    """
    Clean an iTunes tag value

    Removes the " - Single" and " - EP" release suffixes, turns "A / B" and
    "A/B" artist lists into "A x B" and drops list commas.

    Example:
        fix_itunes_labeling("Song - Single")      -> "Song"
        fix_itunes_labeling("Artist A / Artist B") -> "Artist A x Artist B"
    """
    value = value.replace(" - Single", "")
    value = value.replace(" - EP", "")
    value = re.sub(r"\s?/\s?", JOINER, value)
    value = value.replace(", ", " ")
    return value


def remove_x(value: str) -> str:
    """Turn " x " joiners into comma lists, e.g. for playlist displays"""
    return re.sub(r"\sx\s", ", ", value)


def add_x(value: str) -> str:
    """Turn comma lists into " x " joiners"""
    return re.sub(r",\s", JOINER, value)
