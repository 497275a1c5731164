"""
M3U playlist maintenance

Collection filenames join collaborators with " x ", which some players show
verbatim. Exported playlists get their display lines (#EXTINF) rewritten to
" & " while the file path lines stay untouched, so the playlist still
resolves. Imported playlists can also be checked against the collection to
list the tracks that are missing from it.
"""

from pathlib import Path
from typing import List, Union

from ..songs.duplicates import MusicCache
from ..songs.models import Song, SourceVariant, new_song
from ..utils.exceptions import FilePathError
from ..utils.logger import get_logger


logger = get_logger(__name__)

EXTINF = "#EXTINF"


def rewrite_m3u_joiners(path: Union[str, Path]) -> bool:
    """
    Replace " x " joiners with " & " in the #EXTINF lines of a playlist

    Args:
        path: M3U file, rewritten in place

    Returns:
        True if the file changed

    Raises:
        FilePathError: If the playlist does not exist
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise FilePathError(f"Playlist not found: {path}", details={'path': str(path)})

    original = path.read_text(encoding='utf-8')
    lines = [
        line.replace(" x ", " & ") if line.startswith(EXTINF) else line
        for line in original.splitlines(keepends=True)
    ]
    rewritten = "".join(lines)

    if rewritten == original:
        return False

    path.write_text(rewritten, encoding='utf-8')
    logger.info(f"Rewrote joiners: {path.name}")
    return True


def fix_playlists(directory: Union[str, Path]) -> List[str]:
    """
    Rewrite the joiners of every .m3u/.m3u8 playlist in a folder

    Args:
        directory: Playlist folder (not recursive)

    Returns:
        Names of the playlists that changed
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        raise FilePathError(f"Directory not found: {directory}", details={'path': str(directory)})

    changed = []
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() in ('.m3u', '.m3u8') and rewrite_m3u_joiners(path):
            changed.append(path.name)
    return changed


def read_playlist(path: Union[str, Path]) -> List[Song]:
    """
    Parse the track entries of a playlist as PLAYLIST_IMPORT songs

    Comment lines and blank lines are ignored; each entry is parsed from its
    base filename.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise FilePathError(f"Playlist not found: {path}", details={'path': str(path)})

    songs = []
    for line in path.read_text(encoding='utf-8').splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        entry_path = Path(entry.replace("\\", "/"))
        songs.append(new_song(entry_path.name, str(entry_path.parent), SourceVariant.PLAYLIST_IMPORT))
    return songs


def find_missing_tracks(playlist: Union[str, Path], cache: MusicCache) -> List[Song]:
    """
    List the playlist tracks that are not in the collection

    Args:
        playlist: M3U playlist to check
        cache: Collection cache

    Returns:
        Songs of the playlist with no matching artist and title in the cache
    """
    return [song for song in read_playlist(playlist) if not cache.is_duplicate(song)]
