"""Test the batch processors: renaming, conversion, analysis and playlists"""

import csv
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from tunewrangler.processors.analysis import analyze_collection, count_artists
from tunewrangler.processors.converter import convert_flacs, find_flacs
from tunewrangler.processors.playlists import (
    find_missing_tracks,
    fix_playlists,
    read_playlist,
    rewrite_m3u_joiners,
)
from tunewrangler.processors.renamer import (
    MusicRenamer,
    SourceProfile,
    process_beatport,
    process_itunes,
)
from tunewrangler.songs.duplicates import MusicCache
from tunewrangler.songs.models import Song, SourceVariant, new_song
from tunewrangler.utils.exceptions import AudioProcessingError, FilePathError


@pytest.fixture
def download_dirs(temp_dir, file_maker):
    """Download, collection, rename and backup folders for one run"""
    source = file_maker(
        temp_dir / "downloaded",
        "DJ A & DJ B - Track.mp3",
        "Excision - Robots (Figure Remix).mp3",
        "NoSeparator.mp3",
        "noext",
        "playlist.m3u",
    )
    cache = file_maker(temp_dir / "cache", "DJ A x DJ B - Track.mp3")
    return {
        'source_dir': str(source),
        'cache_dir': str(cache),
        'move_dir': str(temp_dir / "renamed"),
        'backup_dir': str(temp_dir / "bak"),
    }


class TestMusicRenamer:
    """Test rename runs end to end with mocked audio collaborators"""

    def test_dry_run(self, download_dirs, temp_dir):
        """Test that a dry run composes names without touching files"""
        renamer = MusicRenamer(SourceProfile.DOWNLOADED, **download_dirs)
        result = renamer.run()

        assert result.processed == 5
        assert result.renamed == ["Figure - Excision - Robots.mp3"]
        assert result.duplicates == ["DJ A x DJ B - Track.mp3"]
        assert sorted(result.skipped) == ["NoSeparator.mp3", "noext", "playlist.m3u"]
        assert result.errors == []
        assert (temp_dir / "downloaded" / "Excision - Robots (Figure Remix).mp3").exists()
        assert not (temp_dir / "bak").exists()

    def test_ignore_duplicates(self, download_dirs):
        renamer = MusicRenamer(SourceProfile.DOWNLOADED, ignore_duplicates=True, **download_dirs)
        result = renamer.run()

        assert "DJ A x DJ B - Track.mp3" in result.renamed
        assert result.duplicates == []

    def test_move(self, temp_dir, file_maker):
        """Test that moving clears the backup, copies sources and transfers"""
        source = file_maker(temp_dir / "downloaded", "Excision - Robots (Figure Remix).mp3")
        file_maker(temp_dir / "cache")
        file_maker(temp_dir / "bak", "stale.mp3")

        tag_manager = Mock()
        tag_manager.merge_tags.return_value = {}
        tag_manager.write_tags.return_value = True
        audio_processor = Mock()
        audio_processor.transfer.return_value = temp_dir / "renamed" / "Figure - Excision - Robots.mp3"

        renamer = MusicRenamer(
            SourceProfile.DOWNLOADED,
            source_dir=str(source),
            cache_dir=str(temp_dir / "cache"),
            move_dir=str(temp_dir / "renamed"),
            backup_dir=str(temp_dir / "bak"),
            move=True,
            tag_manager=tag_manager,
            audio_processor=audio_processor,
        )
        result = renamer.run()

        assert result.renamed == ["Figure - Excision - Robots.mp3"]
        assert not (temp_dir / "bak" / "stale.mp3").exists()
        assert (temp_dir / "bak" / "Excision - Robots (Figure Remix).mp3").exists()

        song, move_dir = audio_processor.transfer.call_args[0]
        assert song.final_filename == "Figure - Excision - Robots.mp3"
        assert move_dir == temp_dir / "renamed"
        assert audio_processor.transfer.call_args[1] == {'remove_source': True}
        tag_manager.write_tags.assert_called_once_with(
            audio_processor.transfer.return_value, "Robots", "Figure", "Excision"
        )

    def test_transfer_failure_recorded(self, temp_dir, file_maker):
        source = file_maker(temp_dir / "downloaded", "Artist - Title.flac")
        file_maker(temp_dir / "cache")
        audio_processor = Mock()
        audio_processor.transfer.side_effect = AudioProcessingError("FFmpeg conversion failed")

        renamer = MusicRenamer(
            SourceProfile.DOWNLOADED,
            source_dir=str(source),
            cache_dir=str(temp_dir / "cache"),
            move_dir=str(temp_dir / "renamed"),
            backup_dir=str(temp_dir / "bak"),
            move=True,
            tag_manager=Mock(),
            audio_processor=audio_processor,
        )
        result = renamer.run()

        assert result.errors == ["Artist - Title.flac"]

    def test_beatport_uses_tags(self, temp_dir, file_maker):
        """Test that Beatport names come from the embedded tags"""
        source = file_maker(temp_dir / "beatport", "12345_Track.mp3")
        file_maker(temp_dir / "cache")
        tag_manager = Mock()
        tag_manager.read_tags.return_value = {'title': "Track", 'artist': "A & B", 'album': "Some EP"}

        renamer = MusicRenamer(
            SourceProfile.BEATPORT,
            source_dir=str(source),
            cache_dir=str(temp_dir / "cache"),
            move_dir=str(temp_dir / "renamed"),
            backup_dir=str(temp_dir / "bak"),
            tag_manager=tag_manager,
        )
        result = renamer.run()

        assert result.renamed == ["A x B - Some EP - Track.mp3"]
        tag_manager.read_tags.assert_called_once_with(str(source / "12345_Track.mp3"))

    def test_itunes_recursive(self, temp_dir, file_maker):
        """Test that iTunes folders are walked recursively"""
        album = file_maker(temp_dir / "itunes" / "Artist" / "Album", "02 Other Song.m4a")
        file_maker(temp_dir / "cache")
        tag_manager = Mock()
        tag_manager.read_tags.return_value = {
            'title': "Other Song", 'artist': "Artist", 'album': "Other Song - Single"
        }

        renamer = MusicRenamer(
            SourceProfile.ITUNES,
            source_dir=str(temp_dir / "itunes"),
            cache_dir=str(temp_dir / "cache"),
            move_dir=str(temp_dir / "renamed"),
            backup_dir=str(temp_dir / "bak"),
            tag_manager=tag_manager,
        )

        assert renamer.list_entries() == [(str(album), "02 Other Song.m4a")]
        assert renamer.run().renamed == ["Artist - Other Song.m4a"]

    def test_missing_source(self, temp_dir, file_maker):
        file_maker(temp_dir / "cache")
        renamer = MusicRenamer(
            SourceProfile.DOWNLOADED,
            source_dir=str(temp_dir / "missing"),
            cache_dir=str(temp_dir / "cache"),
            move_dir=str(temp_dir / "renamed"),
            backup_dir=str(temp_dir / "bak"),
        )

        with pytest.raises(FilePathError):
            renamer.run()

    def test_from_settings(self, mock_settings, temp_dir):
        """Test that folders and options come from the settings"""
        mock_settings.processing.clear_backup = False

        with patch("tunewrangler.processors.renamer.get_settings", return_value=mock_settings):
            renamer = MusicRenamer.from_settings(SourceProfile.BANDCAMP, move=True)

        assert renamer.source_dir == temp_dir / "bandcamp"
        assert renamer.cache_dir == temp_dir / "dj_music"
        assert renamer.move_dir == temp_dir / "rename"
        assert renamer.backup_dir == temp_dir / "backup"
        assert renamer.clear_backup is False
        assert renamer.workers == mock_settings.conversion.max_concurrent_processes


class TestTagSourcedProfiles:
    """Test the Beatport and iTunes field builders"""

    def test_process_itunes_remix(self):
        """Test that the remixer leads and the tagged artist becomes album"""
        song = Song("01 Title (Someone Remix).m4a", "/itunes")
        tags = {'title': "Title (Someone Remix)", 'artist': "Artist A / Artist B", 'album': "Title - Single"}

        process_itunes(song, tags)

        assert (song.artist, song.album, song.title) == ("Someone", "Artist A x Artist B", "Title")
        assert song.tags == tags

    def test_process_itunes_album_equals_title(self):
        song = Song("02 Other Song.m4a", "/itunes")
        process_itunes(song, {'title': "Other Song", 'artist': "Artist", 'album': "Other Song - Single"})

        assert song.album == ""
        assert song.title == "Other Song"

    def test_process_beatport(self):
        song = Song("12345_Track.mp3", "/beatport")
        process_beatport(song, {'title': "Track (feat. Guest)", 'artist': "Björk", 'album': "Some EP"})

        assert song.artist == "Bjork x Guest"
        assert song.title == "Track"
        assert song.album == "Some EP"


class TestConverter:
    """Test FLAC to AIFF conversion runs"""

    def test_find_flacs(self, music_dir):
        songs = find_flacs(music_dir)

        assert [song.filename for song in songs] == ["Flume - Skin - Say It.flac"]
        assert songs[0].variant is SourceVariant.LOCALLY_NAMED

    def test_dry_run(self, music_dir):
        processor = Mock()
        result = convert_flacs(music_dir, music_dir, dry_run=True, audio_processor=processor)

        assert result.found == ["Flume - Skin - Say It.flac"]
        assert result.converted == []
        processor.convert_local.assert_not_called()

    def test_convert_with_backup(self, music_dir, temp_dir):
        """Test that every FLAC is backed up and converted"""
        processor = Mock()
        result = convert_flacs(music_dir, music_dir, backup_dir=temp_dir / "bak", audio_processor=processor)

        assert result.converted == ["Flume - Skin - Say It.flac"]
        assert result.summary == "Total Count: 1 | Converted: 1 | Failed: 0"
        assert (temp_dir / "bak" / "Flume - Skin - Say It.flac").exists()
        song, dest_dir = processor.convert_local.call_args[0]
        assert song.filename == "Flume - Skin - Say It.flac"
        assert dest_dir == music_dir

    def test_conversion_failure(self, music_dir):
        processor = Mock()
        processor.convert_local.side_effect = AudioProcessingError("FFmpeg conversion failed")

        result = convert_flacs(music_dir, music_dir, audio_processor=processor)

        assert result.failed == ["Flume - Skin - Say It.flac"]
        assert result.converted == []

    def test_missing_folder(self, temp_dir):
        with pytest.raises(FilePathError):
            convert_flacs(temp_dir / "missing", temp_dir, audio_processor=Mock())


class TestAnalysis:
    """Test artist counting over the collection"""

    def test_count_artists(self):
        songs = [
            new_song("Flume x Chet Faker - Drop the Game.mp3", "/music"),
            new_song("flume - Sleepless.mp3", "/music"),
        ]
        assert count_artists(songs) == {'flume': 2, 'chet faker': 1}

    def test_analyze_collection(self, music_dir):
        """Test that collaborations count for every artist and non-music is skipped"""
        results = analyze_collection(music_dir, min_count=2)

        assert [(entry.artist, entry.count) for entry in results] == [("flume", 4), ("odesza", 2)]

    def test_min_rating(self, temp_dir, file_maker):
        """Test that only rated tracks count when a minimum rating is set"""
        folder = file_maker(
            temp_dir / "rated",
            "Flume - Skin - Say It - 5.mp3",
            "Flume - Skin - Lose It - 2.mp3",
            "Odesza - Single - Line of Sight - 4.mp3",
            "Odesza - Unrated.mp3",
        )

        results = analyze_collection(folder, min_count=1, min_rating=4)

        assert [(entry.artist, entry.count) for entry in results] == [("flume", 1), ("odesza", 1)]

    def test_csv_output(self, music_dir, temp_dir):
        csv_path = temp_dir / "reports" / "artists.csv"
        analyze_collection(music_dir, min_count=1, csv_path=csv_path)

        with open(csv_path, newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))

        assert rows[0] == ["Artist", "Count"]
        assert rows[1] == ["flume", "4"]
        assert len(rows) == 4


class TestPlaylists:
    """Test M3U joiner rewriting and missing-track checks"""

    PLAYLIST = (
        "#EXTM3U\n"
        "#EXTINF:180,Flume x Chet Faker - Drop the Game\n"
        "/music/Flume x Chet Faker - Drop the Game.mp3\n"
    )

    def test_rewrite_joiners(self, temp_dir):
        """Test that only display lines change so paths still resolve"""
        playlist = temp_dir / "set.m3u"
        playlist.write_text(self.PLAYLIST, encoding='utf-8')

        assert rewrite_m3u_joiners(playlist) is True
        lines = playlist.read_text(encoding='utf-8').splitlines()

        assert lines[1] == "#EXTINF:180,Flume & Chet Faker - Drop the Game"
        assert lines[2] == "/music/Flume x Chet Faker - Drop the Game.mp3"
        assert rewrite_m3u_joiners(playlist) is False

    def test_rewrite_missing(self, temp_dir):
        with pytest.raises(FilePathError):
            rewrite_m3u_joiners(temp_dir / "missing.m3u")

    def test_fix_playlists(self, temp_dir):
        folder = temp_dir / "playlists"
        folder.mkdir()
        (folder / "a.m3u").write_text(self.PLAYLIST, encoding='utf-8')
        (folder / "b.m3u8").write_text("#EXTM3U\n/music/Flume - Sleepless.mp3\n", encoding='utf-8')
        (folder / "c.txt").write_text(self.PLAYLIST, encoding='utf-8')

        assert fix_playlists(folder) == ["a.m3u"]
        assert " x " in (folder / "c.txt").read_text(encoding='utf-8')

    def test_read_playlist(self, temp_dir):
        playlist = temp_dir / "set.m3u"
        playlist.write_text(self.PLAYLIST + "\nC:\\Music\\Odesza - A Moment Apart.aiff\n", encoding='utf-8')

        songs = read_playlist(playlist)

        assert [(song.artist, song.title) for song in songs] == [
            ("Flume x Chet Faker", "Drop the Game"),
            ("Odesza", "A Moment Apart"),
        ]
        assert all(song.variant is SourceVariant.PLAYLIST_IMPORT for song in songs)

    def test_find_missing_tracks(self, music_dir, temp_dir):
        """Test that only tracks absent from the collection are reported"""
        playlist = temp_dir / "import.m3u"
        playlist.write_text(
            "#EXTM3U\n"
            "/music/Flume - Never Be Like You.mp3\n"
            "/music/Someone - Unknown.mp3\n",
            encoding='utf-8'
        )
        cache = MusicCache.from_directory(str(music_dir))

        missing = find_missing_tracks(playlist, cache)

        assert [song.filename for song in missing] == ["Someone - Unknown.mp3"]
        assert Path(missing[0].directory) == Path("/music")
