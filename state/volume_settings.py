"""
Volume settings container for the playback coordinator.

Holds the process-wide master/category volumes and mute flags in one
place so every volume computation reads the same state. Nothing here
is persisted across restarts.
"""

from utils.helpers import clamp01
from .constants import (
    MASTER_VOLUME_DEFAULT, MUSIC_VOLUME_DEFAULT, SFX_VOLUME_DEFAULT,
    MUSIC_MUTED_DEFAULT, SFX_MUTED_DEFAULT
)


class VolumeSettings:
    """Container for master/category volumes and mute flags."""

    def __init__(self, master: float = MASTER_VOLUME_DEFAULT,
                 music: float = MUSIC_VOLUME_DEFAULT,
                 sfx: float = SFX_VOLUME_DEFAULT,
                 music_muted: bool = MUSIC_MUTED_DEFAULT,
                 sfx_muted: bool = SFX_MUTED_DEFAULT):
        """Initialize volume settings.

        Args:
            master: Master volume (0.0-1.0)
            music: Music category volume (0.0-1.0)
            sfx: Sfx category volume (0.0-1.0)
            music_muted: Whether music starts muted
            sfx_muted: Whether sfx starts muted
        """
        self._defaults = (master, music, sfx, music_muted, sfx_muted)
        self.reset()

    def reset(self):
        """Reset every setting to the values given at construction."""
        master, music, sfx, music_muted, sfx_muted = self._defaults
        self.master = clamp01(master)
        self.music = clamp01(music)
        self.sfx = clamp01(sfx)
        self.music_muted = bool(music_muted)
        self.sfx_muted = bool(sfx_muted)

    def set_master(self, volume: float) -> float:
        """Set master volume (clamped). Returns the stored value."""
        self.master = clamp01(volume)
        return self.master

    def set_music(self, volume: float) -> float:
        """Set music volume (clamped). Returns the stored value."""
        self.music = clamp01(volume)
        return self.music

    def set_sfx(self, volume: float) -> float:
        """Set sfx volume (clamped). Returns the stored value."""
        self.sfx = clamp01(volume)
        return self.sfx

    def toggle_music_mute(self) -> bool:
        """Flip the music mute flag. Returns the new state."""
        self.music_muted = not self.music_muted
        return self.music_muted

    def toggle_sfx_mute(self) -> bool:
        """Flip the sfx mute flag. Returns the new state."""
        self.sfx_muted = not self.sfx_muted
        return self.sfx_muted

    def as_dict(self) -> dict:
        return {
            'master': self.master,
            'music': self.music,
            'sfx': self.sfx,
            'music_muted': self.music_muted,
            'sfx_muted': self.sfx_muted,
        }
