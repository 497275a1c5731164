"""
Song parsing and normalization pipeline

    from tunewrangler.songs import new_song, SourceVariant, compose_final_name

    song = new_song("Excision - Robots (Figure Remix).mp3", "/downloads", SourceVariant.FRESHLY_DOWNLOADED)

The pipeline is pure and synchronous; it never touches the filesystem except
for MusicCache.from_directory(), which lists a collection folder.
"""

from .models import Song, SourceVariant, EXTRACTORS, new_song
from .rules import (
    Rule,
    RuleChain,
    DEFAULT_RULES,
    DEFAULT_CHAIN,
    configure_rules,
    remove_bad_characters,
    check_remix,
    check_with,
    check_feat,
    remove_and,
    last_check,
    strip_track_number,
)
from .duplicates import MusicCache, is_duplicate, remove_clip
from .naming import compose_final_name, fix_itunes_labeling, remove_x, add_x
from .unicode import (
    normalize,
    normalize_unicode,
    normalize_fields,
    has_unicode_characters,
    get_unicode_characters,
)

__all__ = [
    # Entity
    'Song',
    'SourceVariant',
    'EXTRACTORS',
    'new_song',

    # Rules
    'Rule',
    'RuleChain',
    'DEFAULT_RULES',
    'DEFAULT_CHAIN',
    'configure_rules',
    'remove_bad_characters',
    'check_remix',
    'check_with',
    'check_feat',
    'remove_and',
    'last_check',
    'strip_track_number',

    # Duplicates
    'MusicCache',
    'is_duplicate',
    'remove_clip',

    # Naming
    'compose_final_name',
    'fix_itunes_labeling',
    'remove_x',
    'add_x',

    # Unicode
    'normalize',
    'normalize_unicode',
    'normalize_fields',
    'has_unicode_characters',
    'get_unicode_characters',
]
