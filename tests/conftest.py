"""
Shared fixtures for the playback tests.

Provides:
    - FakeVoice: in-memory PlaybackVoice recording every call
    - FakeResolver: ClipResolver over a name -> duration table
    - A fresh, capturing AudioLogger for every test
    - Factories for the core components and a fully wired AudioManager
"""

from typing import Dict, List, Optional, Tuple

import pytest

from playback.clip import AudioCategory, Clip, ClipResolver, PlaybackVoice
from playback.clip_cache import ClipCache
from playback.fades import FadeScheduler
from playback.logging import AudioLogger
from playback.manager import AudioManager
from playback.mixer import VolumeMixer
from playback.scheduler import TaskScheduler
from state.config import AudioConfig
from state.volume_settings import VolumeSettings


# =============================================================================
# Fakes
# =============================================================================

class FakeVoice(PlaybackVoice):
    """PlaybackVoice that plays nothing and remembers everything."""

    def __init__(self, name: str = 'voice'):
        self.name = name
        self._clip: Optional[Clip] = None
        self.playing = False
        self.volume = 1.0
        self.pitch = 1.0
        self.looping = False
        self.positional = False
        self.position = None
        self.muted = False
        self.bypass = False
        self.released = False
        self.play_count = 0
        self.stop_count = 0
        self.load_count = 0
        self.volume_history: List[float] = []
        self.position_seconds = 0.0

    def load(self, clip: Clip):
        self.stop()
        self._clip = clip
        self.load_count += 1

    def unload(self):
        self.stop()
        self._clip = None

    @property
    def clip(self) -> Optional[Clip]:
        return self._clip

    def play(self):
        self.playing = self._clip is not None
        self.play_count += 1
        self.position_seconds = 0.0

    def stop(self):
        if self.playing:
            self.stop_count += 1
        self.playing = False

    def finish(self):
        """Simulate the clip reaching its end."""
        self.playing = False

    def is_playing(self) -> bool:
        return self.playing

    def elapsed(self) -> float:
        return self.position_seconds

    def set_volume(self, volume: float):
        self.volume = volume
        self.volume_history.append(volume)

    def set_pitch(self, pitch: float):
        self.pitch = pitch

    def set_looping(self, loop: bool):
        self.looping = loop

    def set_positional(self, enabled: bool, position=None):
        self.positional = enabled
        self.position = position

    def set_muted(self, muted: bool):
        self.muted = muted

    def set_bypass_effects(self, bypass: bool):
        self.bypass = bypass

    def release(self):
        self.stop()
        self.released = True


class FakeResolver(ClipResolver):
    """Resolves names from a table of (category, name) -> duration."""

    def __init__(self, durations: Optional[Dict[Tuple[AudioCategory, str], float]] = None,
                 default_duration: Optional[float] = 1.0):
        """
        Args:
            durations: Explicit clip table
            default_duration: Duration for names missing from the table,
                or None to treat them as not found
        """
        self.durations = dict(durations or {})
        self.default_duration = default_duration
        self.missing = set()
        self.calls: List[Tuple[AudioCategory, str]] = []
        self.unload_calls: List[list] = []
        self.error: Optional[Exception] = None

    def resolve(self, name: str, category: AudioCategory) -> Optional[Clip]:
        self.calls.append((category, name))
        if self.error is not None:
            raise self.error
        if name in self.missing:
            return None
        duration = self.durations.get((category, name), self.default_duration)
        if duration is None:
            return None
        return Clip(name, category, object(), duration)

    def unload_unused(self, retained) -> int:
        self.unload_calls.append(list(retained))
        return 0

    def call_count(self, name: str, category: AudioCategory) -> int:
        return self.calls.count((category, name))


class VoiceFactory:
    """Voice factory for AudioManager recording every voice it creates."""

    def __init__(self):
        self.music: List[FakeVoice] = []
        self.sfx: List[FakeVoice] = []

    def __call__(self, category: AudioCategory, index: int) -> FakeVoice:
        voice = FakeVoice(f'{category.value}_{index}')
        if category is AudioCategory.MUSIC:
            self.music.append(voice)
        else:
            self.sfx.append(voice)
        return voice


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def audio_logger():
    """Fresh singleton logger recording everything, console off."""
    AudioLogger._instance = AudioLogger(level='DEBUG', enabled=False, max_buffer=2000)
    yield AudioLogger._instance
    AudioLogger._instance = None


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def settings():
    return VolumeSettings(master=1.0, music=1.0, sfx=1.0)


@pytest.fixture
def mixer(settings):
    return VolumeMixer(settings)


@pytest.fixture
def scheduler():
    return TaskScheduler()


@pytest.fixture
def fades(scheduler, mixer):
    return FadeScheduler(scheduler, mixer, duration=1.0)


@pytest.fixture
def cache(resolver):
    return ClipCache(resolver)


@pytest.fixture
def voices():
    return VoiceFactory()


@pytest.fixture
def make_manager(resolver, voices):
    """Build an AudioManager over the fakes.

    Unit volumes by default so effective volume equals track level.
    """
    def _make(**overrides):
        params = dict(master_volume=1.0, music_volume=1.0, sfx_volume=1.0, fade_duration=1.0)
        params.update(overrides)
        return AudioManager(resolver, voices, AudioConfig(**params))
    return _make


@pytest.fixture
def manager(make_manager):
    return make_manager()


def run_ticks(target, ticks: int, dt: float = 0.1):
    """Call target.update(dt) a number of times."""
    for _ in range(ticks):
        target.update(dt)


def diagnostics(logger: AudioLogger, code: str) -> list:
    """Buffered log entries reporting a diagnostic code."""
    return logger.find('diagnostic', code)
