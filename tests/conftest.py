"""
Shared test fixtures for streamin tests.

Provides:
- Isolated settings (temp, unprocessed and processed dirs under tmp_path)
- Fake ffmpeg / mp4fragment / mp4dash executables for session tests
- A sample source file and MediaInfo records
"""

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Generator, List, Optional

import pytest

from streamin.core.config import get_settings
from streamin.schemas.media import FFProbeResponse, MediaInfo, ProbeStream, encode_media_id

# =============================================================================
# Fake Tools
# =============================================================================

# Emits an ffmpeg -progress stream on stdout. Behaviour is steered through
# environment variables so each test can shape a run.
FAKE_FFMPEG = """
import os
import sys
import time

out = sys.argv[-1]
duration_us = int(os.environ.get("FAKE_DURATION_US", "10000000"))
steps = int(os.environ.get("FAKE_STEPS", "5"))
delay = float(os.environ.get("FAKE_DELAY", "0"))

print("Input #0, matroska,webm, from 'fake':", flush=True)
sys.stderr.write("ffmpeg version fake\\n")
sys.stderr.flush()

if os.environ.get("FAKE_HANG"):
    time.sleep(60)

for step in range(1, steps + 1):
    print(f"frame={step * 25}")
    print("fps=25.00")
    print("stream_0_0_q=28.0")
    print("bitrate= 128.0kbits/s")
    print(f"total_size={step * 4096}")
    print(f"out_time_us={duration_us * step * 98 // (steps * 100)}")
    print("out_time=00:00:01.000000")
    print("progress=continue", flush=True)
    time.sleep(delay)
print("progress=end", flush=True)

with open(out, "w") as f:
    f.write("fake")

sys.exit(int(os.environ.get("FAKE_FFMPEG_EXIT", "0")))
"""

FAKE_MP4FRAGMENT = """
import os
import shutil
import sys

shutil.copyfile(sys.argv[1], sys.argv[2])
sys.stderr.write("fragmenting\\n")
sys.exit(int(os.environ.get("FAKE_FRAGMENT_EXIT", "0")))
"""

FAKE_MP4DASH = """
import os
import sys

args = sys.argv[1:]
out = args[args.index("-o") + 1]
os.makedirs(out)
with open(os.path.join(out, "manifest.mpd"), "w") as f:
    f.write("<MPD/>")
with open(os.path.join(out, "inputs.txt"), "w") as f:
    f.write("\\n".join(args))
print("Parsing media file 1", flush=True)
"""


def _install_tool(bin_dir: Path, name: str, body: str) -> Path:
    path = bin_dir / name
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(0o755)
    return path


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def media_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[SimpleNamespace, None, None]:
    """
    Point every configured directory at tmp_path.

    Autouse so no test ever writes intermediate files to the real temp dir.
    """
    dirs = SimpleNamespace(
        unprocessed=tmp_path / "unprocessed",
        processed=tmp_path / "processed",
        temp=tmp_path / "scratch",
    )
    for directory in vars(dirs).values():
        directory.mkdir()

    monkeypatch.setenv("STREAMIN_UNPROCESSED_DIR", str(dirs.unprocessed))
    monkeypatch.setenv("STREAMIN_PROCESSED_DIR", str(dirs.processed))
    monkeypatch.setenv("STREAMIN_TEMP_DIR", str(dirs.temp))
    get_settings.cache_clear()

    yield dirs

    get_settings.cache_clear()


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Install fake ffmpeg, mp4fragment and mp4dash and configure their paths."""
    if os.name == "nt":
        pytest.skip("fake tools rely on shebang scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    tools = SimpleNamespace(
        ffmpeg=_install_tool(bin_dir, "ffmpeg", FAKE_FFMPEG),
        mp4fragment=_install_tool(bin_dir, "mp4fragment", FAKE_MP4FRAGMENT),
        mp4dash=_install_tool(bin_dir, "mp4dash", FAKE_MP4DASH),
    )
    monkeypatch.setenv("STREAMIN_FFMPEG_PATH", str(tools.ffmpeg))
    monkeypatch.setenv("STREAMIN_MP4FRAGMENT_PATH", str(tools.mp4fragment))
    monkeypatch.setenv("STREAMIN_MP4DASH_PATH", str(tools.mp4dash))
    get_settings.cache_clear()
    return tools


# =============================================================================
# Media Fixtures
# =============================================================================


def make_media_info(
    path: Path,
    duration: float = 10.0,
    video_codec: Optional[str] = "hevc",
    audio_indices: List[int] = (),
    subtitle_indices: List[int] = (),
) -> MediaInfo:
    """Build a MediaInfo as the probe would return it for a file."""
    streams = []
    if video_codec is not None:
        streams.append(ProbeStream(index=0, codec_name=video_codec, codec_type="video"))
    for index in audio_indices:
        streams.append(ProbeStream(index=index, codec_name="ac3", codec_type="audio"))
    for index in subtitle_indices:
        streams.append(ProbeStream(index=index, codec_name="subrip", codec_type="subtitle"))

    return MediaInfo(
        id=encode_media_id(path),
        video_codec=video_codec,
        audio_codec="ac3" if audio_indices else None,
        file_title=path.name,
        duration=duration,
        raw=FFProbeResponse(streams=streams, format={"duration": duration}),
    )


@pytest.fixture
def source_file(media_dirs: SimpleNamespace) -> Path:
    """A (fake) source media file inside the unprocessed directory."""
    path = media_dirs.unprocessed / "movie.mkv"
    path.write_bytes(b"\x1a\x45\xdf\xa3fake-matroska")
    return path


@pytest.fixture
def media_info(source_file: Path) -> MediaInfo:
    """Ten second source with a single hevc video stream."""
    return make_media_info(source_file)


@pytest.fixture
def media_info_factory():
    """Factory building MediaInfo records with chosen streams."""
    return make_media_info
