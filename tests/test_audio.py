"""Test the ffmpeg processor and the mutagen tag manager"""

import subprocess
from unittest.mock import MagicMock, Mock, patch

import mutagen
import pytest

from tunewrangler.audio.metadata import TagManager
from tunewrangler.audio.processor import AudioProcessor
from tunewrangler.songs.models import Song
from tunewrangler.utils.exceptions import AudioProcessingError, FilePathError


def completed(returncode=0, stderr=""):
    return Mock(returncode=returncode, stdout="", stderr=stderr)


@pytest.fixture
def processor():
    return AudioProcessor()


@pytest.fixture
def source_song(temp_dir):
    """Song backed by a real (empty) file"""
    (temp_dir / "artist - title.flac").write_bytes(b"")
    song = Song("artist - title.flac", str(temp_dir), artist="Artist", title="Title")
    song.final_filename = "Artist - Title.flac"
    return song


class TestBitDepth:
    """Test bit depth detection through pydub's mediainfo"""

    @pytest.mark.parametrize("info,expected", [
        ({'bits_per_raw_sample': '24'}, 24),
        ({'bits_per_raw_sample': '32'}, 24),
        ({'bits_per_sample': '16'}, 16),
        ({'bits_per_raw_sample': 'N/A', 'bits_per_sample': '24'}, 24),
        ({}, 16),
    ])
    def test_detect(self, processor, info, expected):
        with patch("tunewrangler.audio.processor.mediainfo", return_value=info):
            assert processor.detect_bit_depth("track.flac") == expected

    def test_probe_failure(self, processor):
        with patch("tunewrangler.audio.processor.mediainfo", side_effect=OSError("ffprobe missing")):
            assert processor.detect_bit_depth("track.flac") == 16


class TestConversion:
    """Test ffmpeg command construction and failure handling"""

    def test_convert_to_aiff(self, processor, source_song, temp_dir):
        """Test a 24-bit conversion keeps metadata and writes AIFF"""
        with patch("tunewrangler.audio.processor.mediainfo", return_value={'bits_per_raw_sample': '24'}), \
             patch("tunewrangler.audio.processor.subprocess.run", return_value=completed()) as mock_run:
            output = processor.convert_to_aiff(source_song, temp_dir / "out.aiff")

        cmd = mock_run.call_args[0][0]
        assert output == temp_dir / "out.aiff"
        assert cmd[0] == "ffmpeg"
        assert "pcm_s24be" in cmd
        assert cmd[cmd.index("-map_metadata") + 1] == "0"
        assert cmd[cmd.index("-f") + 1] == "aiff"
        assert "artist=Artist" in cmd
        assert "album_artist=Artist" in cmd
        assert mock_run.call_args[1]['timeout'] == processor.timeout

    def test_convert_failure(self, processor, source_song, temp_dir):
        with patch("tunewrangler.audio.processor.mediainfo", return_value={}), \
             patch("tunewrangler.audio.processor.subprocess.run", return_value=completed(1, "Invalid data")):
            with pytest.raises(AudioProcessingError) as exc_info:
                processor.convert_to_aiff(source_song, temp_dir / "out.aiff")

        assert exc_info.value.details['stderr'] == "Invalid data"

    def test_ffmpeg_timeout(self, processor, source_song, temp_dir):
        timeout = subprocess.TimeoutExpired(cmd="ffmpeg", timeout=1)
        with patch("tunewrangler.audio.processor.mediainfo", return_value={}), \
             patch("tunewrangler.audio.processor.subprocess.run", side_effect=timeout):
            with pytest.raises(AudioProcessingError):
                processor.convert_to_aiff(source_song, temp_dir / "out.aiff")

    def test_ffmpeg_missing(self, processor, source_song, temp_dir):
        with patch("tunewrangler.audio.processor.mediainfo", return_value={}), \
             patch("tunewrangler.audio.processor.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(AudioProcessingError):
                processor.convert_to_aiff(source_song, temp_dir / "out.aiff")

    def test_retag_mp3_retry(self, processor, temp_dir):
        """Test that a failed retag is retried without the metadata copy"""
        song = Song("a.mp3", str(temp_dir), artist="Artist", title="Title")
        results = [completed(1, "corrupt"), completed()]

        with patch("tunewrangler.audio.processor.subprocess.run", side_effect=results) as mock_run:
            processor.retag_mp3(song, temp_dir / "Artist - Title.mp3")

        first, second = (call[0][0] for call in mock_run.call_args_list)
        assert "-map_metadata" in first
        assert "-map_metadata" not in second
        assert "copy" in second
        assert second[second.index("-id3v2_version") + 1] == str(processor.id3_version)

    def test_retag_mp3_failure(self, processor, temp_dir):
        song = Song("a.mp3", str(temp_dir), artist="Artist", title="Title")
        with patch("tunewrangler.audio.processor.subprocess.run", return_value=completed(1)):
            with pytest.raises(AudioProcessingError):
                processor.retag_mp3(song, temp_dir / "out.mp3")


class TestTransfer:
    """Test moving songs into a destination folder"""

    def test_requires_final_filename(self, processor, source_song, temp_dir):
        source_song.final_filename = ""
        with pytest.raises(FilePathError):
            processor.transfer(source_song, temp_dir)

    def test_requires_source(self, processor, temp_dir):
        song = Song("missing.mp3", str(temp_dir))
        song.final_filename = "A - B.mp3"
        with pytest.raises(FilePathError):
            processor.transfer(song, temp_dir)

    def test_lossless_converted(self, processor, source_song, temp_dir):
        """Test that non-MP3 files become AIFF under their final name"""
        dest = temp_dir / "renamed"
        with patch.object(processor, 'convert_to_aiff', side_effect=lambda song, out: out) as mock_convert:
            output = processor.transfer(source_song, dest, remove_source=True)

        mock_convert.assert_called_once_with(source_song, dest / "Artist - Title.aiff")
        assert output == dest / "Artist - Title.aiff"
        assert not (temp_dir / "artist - title.flac").exists()

    def test_mp3_retagged(self, processor, temp_dir):
        (temp_dir / "a.mp3").write_bytes(b"")
        song = Song("a.mp3", str(temp_dir), artist="Artist", title="Title")
        song.final_filename = "Artist - Title.mp3"

        with patch.object(processor, 'retag_mp3', side_effect=lambda song, out: out) as mock_retag:
            processor.transfer(song, temp_dir / "renamed")

        mock_retag.assert_called_once_with(song, temp_dir / "renamed" / "Artist - Title.mp3")
        assert (temp_dir / "a.mp3").exists()

    def test_convert_local(self, processor, source_song, temp_dir):
        """Test in-place conversion keeps the source name"""
        with patch.object(processor, 'convert_to_aiff') as mock_convert:
            output = processor.convert_local(source_song, temp_dir)

        mock_convert.assert_called_once_with(source_song, temp_dir / "artist - title.aiff")
        assert output == temp_dir / "artist - title.aiff"
        assert not (temp_dir / "artist - title.flac").exists()

    def test_convert_local_failure_keeps_source(self, processor, source_song, temp_dir):
        with patch.object(processor, 'convert_to_aiff', side_effect=AudioProcessingError("failed")):
            with pytest.raises(AudioProcessingError):
                processor.convert_local(source_song, temp_dir)

        assert (temp_dir / "artist - title.flac").exists()


class TestTagManager:
    """Test tag reading and writing across formats"""

    @pytest.fixture
    def tag_manager(self):
        return TagManager()

    def test_read_missing_file(self, tag_manager, temp_dir):
        assert tag_manager.read_tags(temp_dir / "missing.mp3") is None

    def test_read_unsupported(self, tag_manager, temp_dir):
        (temp_dir / "notes.txt").write_text("x")
        assert tag_manager.read_tags(temp_dir / "notes.txt") is None

    def test_read_mp3(self, tag_manager, temp_dir):
        """Test ID3 frames map onto the common keys"""
        (temp_dir / "a.mp3").write_bytes(b"")
        frames = {'TIT2': Mock(text=["Title"]), 'TPE1': Mock(text=["Artist"])}

        with patch("tunewrangler.audio.metadata.MP3", return_value=Mock(tags=frames)):
            tags = tag_manager.read_tags(temp_dir / "a.mp3")

        assert tags == {'title': "Title", 'artist': "Artist", 'album': "", 'album_artist': ""}

    def test_read_flac(self, tag_manager, temp_dir):
        (temp_dir / "a.flac").write_bytes(b"")
        comments = {'TITLE': ["Title"], 'ARTIST': ["Artist"], 'ALBUM': ["Album"]}

        with patch("tunewrangler.audio.metadata.FLAC", return_value=comments):
            tags = tag_manager.read_tags(temp_dir / "a.flac")

        assert tags['album'] == "Album"
        assert tags['album_artist'] == ""

    def test_read_corrupt_file(self, tag_manager, temp_dir):
        (temp_dir / "a.m4a").write_bytes(b"")
        with patch("tunewrangler.audio.metadata.MP4", side_effect=mutagen.MutagenError("bad atom")):
            assert tag_manager.read_tags(temp_dir / "a.m4a") is None

    def test_write_flac(self, tag_manager, temp_dir):
        """Test that Vorbis comments are written and saved"""
        (temp_dir / "a.flac").write_bytes(b"")
        audio = MagicMock()

        with patch("tunewrangler.audio.metadata.FLAC", return_value=audio):
            assert tag_manager.write_tags(temp_dir / "a.flac", "Title", "Artist", "Album") is True

        audio.__setitem__.assert_any_call('TITLE', "Title")
        audio.__setitem__.assert_any_call('ALBUMARTIST', "Artist")
        audio.save.assert_called_once()

    def test_write_unsupported(self, tag_manager, temp_dir):
        (temp_dir / "a.wav").write_bytes(b"")
        assert tag_manager.write_tags(temp_dir / "a.wav", "Title", "Artist", "Album") is False

    def test_merge_tags(self, tag_manager, temp_dir):
        """Test that parsed fields win over existing tags"""
        song = Song("a.mp3", str(temp_dir), artist="Artist", album="Album", title="Title")
        existing = {'title': "old title", 'artist': "old artist", 'album': "", 'album_artist': "", 'genre': "Dubstep"}

        with patch.object(tag_manager, 'read_tags', return_value=existing):
            merged = tag_manager.merge_tags(song)

        assert merged['title'] == "Title"
        assert merged['album_artist'] == "Artist"
        assert merged['genre'] == "Dubstep"
        assert song.tags['artist'] == "Artist"
