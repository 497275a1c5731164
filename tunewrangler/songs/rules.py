"""
Normalization rules for parsed songs

Every rule takes a Song, edits its filename and fields in place and returns the
same Song. Rules are total: a pattern that does not match leaves the song
untouched, and no rule raises. Rules that edit the filename recompute
dash_count before returning.

The rules run in this order:

    1. remove_bad_characters  Unicode folding, channel/genre/tag noise removal
    2. check_remix            "(Someone Remix)" moves Someone into artist
    3. check_with             "(w/ Someone)" style collaborators join the artist
    4. check_feat             "(feat. Someone)" and "(prod. Someone)" extraction
    5. remove_and             "&", ",", "and", "+" joiners become " x "
    6. last_check             Trailing bracket cleanup per field
    7. strip_track_number     Leading "01 " track numbers (Bandcamp only)

Processors interleave field extraction between these steps, so the rules are
exposed both as plain functions and as named Rule objects that can be
configured (remix keywords, bracket exclusions) and chained.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.logger import get_logger
from .unicode import normalize

if TYPE_CHECKING:
    from .models import Song


logger = get_logger(__name__)


JOINER = " x "

REMIX_KEYWORDS: Tuple[str, ...] = ("REMIX", "REFIX", "FLIP", "EDIT", "BOOTLEG", "REBOOT")

# Title keywords that keep a trailing bracket, e.g. "Title (VIP)"
TITLE_EXCLUSIONS: Tuple[str, ...] = ("VIP", "WIP", "CLIP", "INSTRUMENTAL", "EXTENDED")
ARTIST_EXCLUSIONS: Tuple[str, ...] = ()
ALBUM_EXCLUSIONS: Tuple[str, ...] = ()

TRACK_OF_THE_DAY = "Track of the Day- "

# Collaborator markers in priority order; bracketed forms also drop the closing bracket
WITH_MARKERS: Tuple[Tuple[str, bool], ...] = (
    ("(W-", True),
    ("(WITH ", True),
    ("(W_", True),
    ("W-", False),
    ("W_", False),
    (" W ", False),
)

FEAT_PATTERN = re.compile(r"(\(|\[|\s)(FEAT|FT|FEATURING)(\.?)\s.+(\)|\]|$)", re.IGNORECASE)
FEAT_END_PATTERN = re.compile(r"(\)|\]|$)")
PROD_PATTERN = re.compile(r"(\(|\[)PROD\.?\s", re.IGNORECASE)
BRACKET_PATTERN = re.compile(r"(\(|\[)")
TRACK_NUMBER_PATTERN = re.compile(r"^\d{2}\s")

AND_REPLACEMENTS = (
    (re.compile(r" & "), JOINER),
    (re.compile(r" %26 "), JOINER),
    (re.compile(r", "), JOINER),
    (re.compile(r" X ", re.IGNORECASE), JOINER),
    (re.compile(r" and ", re.IGNORECASE), JOINER),
    (re.compile(r" \+ "), JOINER),
)

# Upload channel, genre and promotional tags removed from downloaded filenames
CHANNEL_TAGS = (
    r" \(SUBLMNL .+\)",
    r" \(CIRCUS .+\)",
    r" \[COOKERZ]",
    r" \[.+ CROWSNEST\]",
    r" \[DS FREEBIE\]",
    r" \[ELECTROSTEP .+]",
    r" \(EATBRAIN.+\)",
    r" \[FOOLS GOLD]",
    r" \[GOOD ENUFF RELEASE\]",
    r" \(KILL THE COPYRIGHT RELEASE\)",
    r" \[JD4D .+\]",
    r" \(METHLAB .+\)",
    r" \[MONSTERCAT .+\]",
    r" \[NCS RELEASE\]",
    r" \[NEST.+\]",
    r" \(NEST .+\)",
    r" \{NSD BLACK LABEL\}",
    r" \[I AM SO HIGH.+\]",
    r" \[OTODAYO .+\]",
    r" \[PRIME AUDIO\]",
    r" \(RIDDIM NETWORK .+\)",
    r" \[ROTTUN .+\]",
    r" \(RNE\)",
    r" \[HT.+\]",
    r" \[THISSONGISSICK.+\]",
    r" \(TERMINAL\)",
)

GENRE_TAGS = (
    r" \[BASS\]",
    r" \[BASS HOUSE\]",
    r" \[CHILL TRAP\]",
    r" \[DNB\]",
    r" \[DRUM&BASS\]",
    r" \[DRUM & BASS\]",
    r" \[DRUM AND BASS\]",
    r" \[DRUMSTEP\]",
    r" \[DUBSTEP\]",
    r" \[EDM\]",
    r" \[ELECTRO\]",
    r" \[ELECTRONIC\]",
    r" \[ELECTRONICA\]",
    r" \[FREAKSTEP\]",
    r" \[FUTURE\]",
    r" \[FUTURE BASS\]",
    r" \[GLITCH HOP\]",
    r" \[HARD DANCE\]",
    r" \[HARDSTYLE TRAP\]",
    r" \[HIP HOP\]",
    r" \[HOUSE\]",
    r" \[HYBRID\]",
    r" \[JUNGLE TERROR\]",
    r" \[MELODIC DUBSTEP\]",
    r" \[NEURO TRAP\]",
    r" \[TRAP\]",
)

PROMO_TAGS = (
    r" \[ 360 VISUALIZER \]",
    r" \[360 VR VIDEO\]",
    r" \(1440P\)",
    r" \(AUDIO\)",
    r" \(AVAILABLE .+\)",
    r" \(BUY .+\)",
    r" \[BUY .+\]",
    r" \(CLICK BUY.+\)",
    r" \[CLICK BUY.+\]",
    r" \[DOWNLOAD .+\]",
    r" \(EXCLUSIVE\)",
    r" \[EXCLUSIVE\]",
    r" \[EXCLUSIVE .+\]",
    r" \[.+ EXCLUSIVE\]",
    r" \(.+ EXCLUSIVE\)",
    r" \(EXTENDED MIX\)",
    r" \(FINAL\)",
    r" \[FORTHCOMING .+\]",
    r" \[FREE\]",
    r" \(FREE\)",
    r" \(FREE .+\)",
    r" \[FREE .+\]",
    r" FREE DOWNLOAD",
    r" \[OFFICIAL\]",
    r" \(OFFICIAL\)",
    r" \(OFFICIAL .+\)",
    r" \{OFFICIAL .+\}",
    r" \[OFFICIAL .+\]",
    r" \(LYRIC VIDEO\)",
    r" \(MASTER\)",
    r" \(ORIGINAL MIX\)",
    r" \( ORIGINAL MIX \)",
    r" \[ORIGINAL MIX\]",
    r" \(OUT .+\)",
    r" \[OUT .+\]",
    r"OUT NO.+",
    r" \[PREMIERE\]",
    r" \[.+ PREMIERE\]",
    r" \(.+ PREMIERE\)",
    r" \[REMASTER\]",
    r" READ DESCRIPTION",
    r" \(RADIO EDIT\)",
)

FILENAME_REMOVALS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in CHANNEL_TAGS + GENRE_TAGS + PROMO_TAGS
)

NEVER_SAY_DIE_PATTERN = re.compile(r"Never Say Die - Black Label", re.IGNORECASE)


def _rewrite_premiere(filename: str, start_marker: str, end_marker: str, quote: str) -> str:
    # Cut "<start_marker> ... <end_marker>" and turn the quoted title into a segment
    upper = filename.upper()
    filename = filename[:upper.find(start_marker)] + filename[upper.find(end_marker) + len(end_marker):]
    return filename.replace(quote, "- ", 1).replace(quote, "", 1)


def remove_bad_characters(song: "Song") -> "Song":
    """
    Clean a downloaded filename before it is tokenized

    Folds Unicode to ASCII, fixes known channel naming quirks (Insomniac
    "Track of the Day", DJ Mag premieres, Fire tags) and removes the channel,
    genre and promotional tags that uploaders add around titles.

    Args:
        song: Song whose filename is cleaned

    Returns:
        The same song with dash_count recomputed
    """
    original = song.filename
    filename = normalize(song.filename)

    upper = filename.upper()
    if "[FIRE" in upper:
        filename = filename[:max(upper.find("[FIRE") - 1, 0)] + ".mp3"

    if "NEVER SAY DIE - BLACK LABEL" in filename.upper():
        filename = NEVER_SAY_DIE_PATTERN.sub("Never Say Die Black Label", filename)

    upper = filename.upper()
    if "INSOMNIAC" in upper and "TRACK OF THE DAY" in upper:
        filename = _rewrite_premiere(filename, "TRACK OF", "OF THE DAY ", '"')
    elif "DJMAG" in upper and "PREMIERE" in upper:
        filename = _rewrite_premiere(filename, "PREMIERE", "PREMIERE ", "'")

    for pattern in FILENAME_REMOVALS:
        filename = pattern.sub("", filename)

    song.filename = filename
    song.dash_count = song.get_dash_count()

    if song.filename != original:
        song.changed = True

    return song


def check_remix(song: "Song", keywords: Sequence[str] = REMIX_KEYWORDS) -> "Song":
    """
    Move a remixer out of a "(Someone Remix)" bracket into the artist field

    The first keyword whose bracket matches wins. The bracket must not be
    closed before the keyword, so "Title (feat. A) (B Remix)" credits B, and
    the keyword must be followed by a non-word character, so an album called
    "Remixes" is left alone.

    Args:
        song: Song to inspect
        keywords: Remix keywords in priority order

    Returns:
        The same song; remix and changed are set when the artist changed
    """
    original_artist = song.artist
    filename = song.filename

    for keyword in keywords:
        bracket = re.search(r"(\(|\[)[^\)]+ " + re.escape(keyword) + r"\W", filename, re.IGNORECASE)
        if not bracket:
            continue

        keyword_match = re.search(" " + re.escape(keyword) + r"\W", filename, re.IGNORECASE)
        song.artist = filename[bracket.start() + 1:keyword_match.start()].strip()
        song.filename = filename[:bracket.start()].strip() + song.extension
        song.dash_count = song.get_dash_count()
        break

    if song.artist != original_artist:
        song.remix = True
        song.changed = True

    return song


def check_with(song: "Song") -> "Song":
    """
    Join a "with" collaborator to the artist

    Only the first marker found is handled. Everything after the marker up to
    the extension is the collaborator; the filename is cut before the marker.
    Songs without an artist are left alone.

    Args:
        song: Song to inspect

    Returns:
        The same song
    """
    if not song.artist:
        return song

    original_artist = song.artist
    filename = song.filename
    upper = filename.upper()

    for marker, bracketed in WITH_MARKERS:
        index = upper.find(marker)
        if index == -1:
            continue

        end = filename.rfind(song.extension)
        if bracketed:
            end -= 1

        collaborator = filename[index + len(marker):end].strip()
        song.artist += f"{JOINER}{collaborator}"
        song.filename = filename[:index].strip() + song.extension
        song.dash_count = song.get_dash_count()
        break

    if song.artist != original_artist:
        song.changed = True

    return song


def _split_featuring(value: str) -> Optional[Tuple[str, str]]:
    match = FEAT_PATTERN.search(value)
    if not match:
        return None

    start = match.start() + len(match.group(1)) + len(match.group(2)) + len(match.group(3))
    featuring = value[start:FEAT_END_PATTERN.search(value).start()].strip()
    return value[:match.start()].strip(), featuring


def _split_producer(value: str) -> Optional[Tuple[str, str]]:
    match = PROD_PATTERN.search(value)
    if not match:
        return None

    producer = value[match.end():value.rfind(")")].strip()
    return value[:match.start()].strip(), producer


def check_feat(song: "Song") -> "Song":
    """
    Extract featured and producer credits from artist, title and album

    Each field is matched against its value from before this rule ran, so a
    later match overrides the credit found by an earlier one. The credit is
    then attributed:
        - remixes credit the original artist, which lives in album
        - a credit found in artist or title joins the artist
        - a credit found only in album joins the album

    Args:
        song: Song to inspect

    Returns:
        The same song
    """
    original_artist = song.artist
    original_title = song.title
    original_album = song.album or ""
    featuring = None

    for field_name, original in (("artist", original_artist), ("title", original_title), ("album", original_album)):
        split = _split_featuring(original)
        if split:
            value, featuring = split
            setattr(song, field_name, value)

    for field_name, original in (("artist", original_artist), ("title", original_title)):
        split = _split_producer(original)
        if split:
            value, featuring = split
            setattr(song, field_name, value)

    if (song.artist, song.title, song.album) == (original_artist, original_title, original_album):
        return song

    song.changed = True
    logger.debug(f"Feat: {featuring}")

    if not featuring:
        return song

    if song.remix:
        song.album += f"{JOINER}{featuring}"
    elif song.artist != original_artist or song.title != original_title:
        song.artist += f"{JOINER}{featuring}"
    elif song.album != original_album:
        song.album += f"{JOINER}{featuring}"

    return song


def remove_and(song: "Song", *field_names: str) -> "Song":
    """
    Rewrite collaboration joiners to the canonical " x "

    Args:
        song: Song to rewrite
        *field_names: Fields to rewrite, artist and album when omitted

    Returns:
        The same song
    """
    for field_name in field_names or ("artist", "album"):
        original = getattr(song, field_name)
        value = original
        for pattern, replacement in AND_REPLACEMENTS:
            value = pattern.sub(replacement, value)

        if value != original:
            setattr(song, field_name, value)
            song.changed = True

    return song


def _truncate_at_bracket(value: str, exclusions: Iterable[str]) -> str:
    match = BRACKET_PATTERN.search(value)
    if not match:
        return value

    upper = value.upper()
    if any(keyword.upper() in upper for keyword in exclusions):
        return value

    return value[:match.start()].strip()


def last_check(
    song: "Song",
    title_exclusions: Iterable[str] = TITLE_EXCLUSIONS,
    artist_exclusions: Iterable[str] = ARTIST_EXCLUSIONS,
    album_exclusions: Iterable[str] = ALBUM_EXCLUSIONS
) -> "Song":
    """
    Final cleanup of the parsed fields

    Insomniac "Track of the Day- " uploads carry the real artist and the quoted
    title after the marker; the uploading channel becomes the album. After that
    each field is truncated at its first "(" or "[" unless it contains one of
    its exclusion keywords (case-insensitive).

    Args:
        song: Song to clean
        title_exclusions: Keywords that keep the title's brackets
        artist_exclusions: Keywords that keep the artist's brackets
        album_exclusions: Keywords that keep the album's brackets

    Returns:
        The same song
    """
    original = (song.artist, song.album, song.title)

    # dash_count is left as parsed, so a channel-less upload composes to
    # "Artist - Title" instead of keeping an empty album segment
    if TRACK_OF_THE_DAY in song.filename:
        filename = song.filename
        marked_artist = filename[filename.rfind("- ") + 2:filename.find('"')].strip()
        # No-op once applied, when artist already holds the marked artist
        if song.artist != _truncate_at_bracket(marked_artist, artist_exclusions):
            song.album = song.artist
            song.artist = marked_artist
            song.title = filename[filename.find('"') + 1:filename.rfind('"')].strip()

    for field_name, exclusions in (
        ("title", title_exclusions),
        ("artist", artist_exclusions),
        ("album", album_exclusions),
    ):
        value = getattr(song, field_name)
        truncated = _truncate_at_bracket(value, exclusions)
        if truncated != value:
            logger.debug(f"{field_name.capitalize()}: {value}")
            setattr(song, field_name, truncated)

    if (song.artist, song.album, song.title) != original:
        song.changed = True

    return song


def strip_track_number(song: "Song") -> "Song":
    """Drop a leading two-digit track number such as "01 " from the title"""
    if TRACK_NUMBER_PATTERN.match(song.title):
        song.title = song.title[3:]
        song.changed = True
    return song


@dataclass(frozen=True)
class Rule:
    """
    A named, pre-configured normalization rule

    Attributes:
        name: Rule name used in logs and chain lookups
        func: Rule function taking the song as first argument
        args: Extra positional arguments (field names for remove_and)
        options: Keyword arguments (keywords, exclusion sets)
    """
    name: str
    func: Callable[..., "Song"]
    args: Tuple[Any, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __call__(self, song: "Song") -> "Song":
        return self.func(song, *self.args, **self.options)

    def with_options(self, **options) -> "Rule":
        """Return a copy of the rule with additional keyword arguments"""
        return Rule(self.name, self.func, self.args, {**self.options, **options})


class RuleChain:
    """Ordered sequence of rules applied one after the other to the same song"""

    def __init__(self, rules: Iterable[Rule]):
        self.rules: List[Rule] = list(rules)

    @property
    def names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def apply(self, song: "Song") -> "Song":
        for rule in self.rules:
            song = rule(song)
        return song

    @classmethod
    def from_names(cls, rules: Dict[str, Rule], *names: str) -> "RuleChain":
        """Build a chain from a rule mapping, keeping the order of names"""
        return cls(rules[name] for name in names)

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        return f"RuleChain({' -> '.join(self.names)})"


RULE_ORDER = (
    "remove_bad_characters",
    "check_remix",
    "check_with",
    "check_feat",
    "remove_and",
    "last_check",
    "strip_track_number",
)


def configure_rules(
    remix_keywords: Optional[Sequence[str]] = None,
    title_exclusions: Optional[Iterable[str]] = None,
    artist_exclusions: Optional[Iterable[str]] = None,
    album_exclusions: Optional[Iterable[str]] = None
) -> Dict[str, Rule]:
    """
    Build the rule mapping with optional keyword and exclusion overrides

    Args:
        remix_keywords: Remix keywords in priority order
        title_exclusions: Keywords that keep a bracket in the title
        artist_exclusions: Keywords that keep a bracket in the artist
        album_exclusions: Keywords that keep a bracket in the album

    Returns:
        Dictionary of rule name to Rule, in pipeline order
    """
    last_check_options = {
        'title_exclusions': tuple(title_exclusions if title_exclusions is not None else TITLE_EXCLUSIONS),
        'artist_exclusions': tuple(artist_exclusions if artist_exclusions is not None else ARTIST_EXCLUSIONS),
        'album_exclusions': tuple(album_exclusions if album_exclusions is not None else ALBUM_EXCLUSIONS),
    }

    configured = (
        Rule("remove_bad_characters", remove_bad_characters),
        Rule("check_remix", check_remix, options={'keywords': tuple(remix_keywords or REMIX_KEYWORDS)}),
        Rule("check_with", check_with),
        Rule("check_feat", check_feat),
        Rule("remove_and", remove_and, args=("artist", "album")),
        Rule("last_check", last_check, options=last_check_options),
        Rule("strip_track_number", strip_track_number),
    )
    return {rule.name: rule for rule in configured}


DEFAULT_RULES: Dict[str, Rule] = configure_rules()

DEFAULT_CHAIN = RuleChain.from_names(DEFAULT_RULES, *RULE_ORDER[:-1])
