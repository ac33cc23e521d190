"""Clip data and the collaborator interfaces of the playback core.

The core never talks to an audio library directly. It loads clips
through a ClipResolver and plays them on PlaybackVoice handles; the
FMOD implementations live in fmod_audio.py and playback/loader.py.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

Vec3 = Tuple[float, float, float]


class AudioCategory(Enum):
    """Cache namespace and mixer category of a clip."""
    MUSIC = "music"
    SFX = "sfx"


@dataclass(frozen=True, eq=False)
class Clip:
    """A loaded audio clip.

    Fields:
        name: Logical name the clip was requested under
        category: MUSIC or SFX
        data: Opaque decoded-audio handle (an FMOD Sound for the FMOD backend)
        duration: Playable length in seconds

    Clips compare by identity: two loads of the same file are two clips.
    """
    name: str
    category: AudioCategory
    data: Any
    duration: float

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")


class ClipResolver(ABC):
    """Turns a logical clip name into a loaded Clip."""

    @abstractmethod
    def resolve(self, name: str, category: AudioCategory) -> Optional[Clip]:
        """Load a clip.

        Args:
            name: Logical clip name
            category: MUSIC or SFX

        Returns:
            The loaded Clip, or None if nothing matches
        """
        raise NotImplementedError

    def unload_unused(self, retained: Iterable[Clip]) -> int:
        """Release backend resources not backing any retained clip.

        Returns:
            Number of backend resources released
        """
        return 0


class PlaybackVoice(ABC):
    """One playback handle on the audio device.

    Volume, pitch, looping, positional mode and mute are settings of the
    handle: they may be set before play() and persist until changed.
    """

    @abstractmethod
    def load(self, clip: Clip) -> None:
        """Attach a clip (stops anything currently playing)."""
        raise NotImplementedError

    @abstractmethod
    def unload(self) -> None:
        """Detach the current clip."""
        raise NotImplementedError

    @property
    @abstractmethod
    def clip(self) -> Optional[Clip]:
        """The attached clip, if any."""
        raise NotImplementedError

    @abstractmethod
    def play(self) -> None:
        """Start the attached clip from the beginning."""
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def is_playing(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def elapsed(self) -> float:
        """Seconds played since the last play()."""
        raise NotImplementedError

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_pitch(self, pitch: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_looping(self, loop: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_positional(self, enabled: bool, position: Optional[Vec3] = None) -> None:
        """Switch between 2D and positional (3D) playback."""
        raise NotImplementedError

    @abstractmethod
    def set_muted(self, muted: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_bypass_effects(self, bypass: bool) -> None:
        """Route around the category effect chain when True."""
        raise NotImplementedError

    @abstractmethod
    def release(self) -> None:
        """Free the handle. It is not used again afterwards."""
        raise NotImplementedError
