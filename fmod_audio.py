"""
FMOD Audio Module for the playback coordinator.

Backend adapter over pyfmodex (FMOD Python bindings). FMODSystem owns
the FMOD system, the 'music' and 'sfx' channel groups and every loaded
Sound; FMODVoice implements the PlaybackVoice handle the core plays on.

Usage:
    from fmod_audio import FMODSystem

    fmod = FMODSystem()
    fmod.init(max_channels=64)
    manager = AudioManager(SoundLoader(fmod), fmod.voice)

    # In main loop:
    manager.update(dt)
    fmod.update()

    # Cleanup:
    manager.shutdown()
    fmod.cleanup()
"""

import os
from typing import Dict, Optional, Union

import pyfmodex
from pyfmodex.flags import MODE, TIMEUNIT
from pyfmodex.structures import CREATESOUNDEXINFO

from playback.clip import AudioCategory, Clip, PlaybackVoice, Vec3
from playback.logging import audio_log
from state.constants import (
    GROUP_VOLUMES, DEFAULT_PITCH, PITCH_MIN, PITCH_MAX,
    SFX_MIN_DISTANCE, SFX_MAX_DISTANCE
)


def _expected_error(e: Exception) -> bool:
    """INVALID HANDLE / CHANNEL STOLEN just mean the sound already ended."""
    error_str = str(e).upper()
    return 'INVALID HANDLE' in error_str or 'CHANNEL STOLEN' in error_str


class FMODSystem:
    """Audio system wrapper for FMOD/pyfmodex."""

    def __init__(self):
        self.system = None
        self.master_group = None
        self.channel_groups: Dict[str, object] = {}
        self.sounds = set()  # Every Sound created and not yet released
        self._initialized = False

    def init(self, max_channels: int = 64):
        """Initialize the FMOD system and the category groups.

        Args:
            max_channels: Maximum number of virtual channels
        """
        if self._initialized:
            return

        # Ensure DLLs can be found from project directory
        dll_path = os.path.dirname(os.path.abspath(__file__))
        try:
            os.add_dll_directory(dll_path)
        except (AttributeError, OSError):
            pass  # add_dll_directory not available or failed

        self.system = pyfmodex.System()
        self.system.init(maxchannels=max_channels)
        self.master_group = self.system.master_channel_group

        for name, base_vol in GROUP_VOLUMES.items():
            group = self.system.create_channel_group(name)
            group.volume = base_vol
            self.channel_groups[name] = group

        self._initialized = True
        audio_log('INFO', "FMOD initialized", {'version': hex(self.system.version), 'max_channels': max_channels})

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # === Sounds ===

    def create_sound(self, source: Union[str, bytes], category: AudioCategory):
        """Create a Sound from a file path or in-memory file data.

        Music is streamed and loop-capable; sfx is loaded as a 3D-capable
        sample with linear rolloff.

        Args:
            source: File path, or the bytes of an audio file
            category: MUSIC or SFX

        Returns:
            The Sound, or None if FMOD could not load it
        """
        if category is AudioCategory.MUSIC:
            mode = MODE.CREATESTREAM | MODE.TWOD | MODE.LOOP_NORMAL
        else:
            mode = MODE.CREATESAMPLE | MODE.THREED | MODE.THREED_LINEARROLLOFF | MODE.LOOP_OFF

        try:
            if isinstance(source, (bytes, bytearray)):
                exinfo = CREATESOUNDEXINFO()
                exinfo.length = len(source)
                # Streams would read from the buffer after it is gone
                if category is AudioCategory.MUSIC:
                    mode = (mode & ~MODE.CREATESTREAM) | MODE.CREATESAMPLE
                sound = self.system.create_sound(bytes(source), mode=mode | MODE.OPENMEMORY, exinfo=exinfo)
            else:
                sound = self.system.create_sound(source, mode)
        except Exception as e:
            audio_log('ERROR', "Failed to create sound", {
                'source': source if isinstance(source, str) else f"<{len(source)} bytes>",
                'error': str(e)
            })
            return None

        if category is AudioCategory.SFX:
            try:
                sound.min_distance = SFX_MIN_DISTANCE
                sound.max_distance = SFX_MAX_DISTANCE
            except Exception as e:
                audio_log('DEBUG', "Failed to set 3D distance", {'error': str(e)})

        self.sounds.add(sound)
        return sound

    def sound_length(self, sound) -> float:
        """Length of a Sound in seconds (0.0 if unknown)."""
        try:
            return sound.get_length(TIMEUNIT.MS) / 1000.0
        except Exception as e:
            audio_log('WARNING', "Failed to query sound length", {'error': str(e)})
            return 0.0

    def release_sound(self, sound):
        if sound not in self.sounds:
            return
        self.sounds.discard(sound)
        try:
            sound.release()
        except Exception as e:
            audio_log('WARNING', "Failed to release sound", {'error': str(e)})

    # === Channels ===

    def play_paused(self, sound, group_name: Optional[str] = None):
        """Start a Sound paused so its channel can be configured first.

        Args:
            sound: The Sound to play
            group_name: Channel group, or None for the master group

        Returns:
            The Channel, or None if FMOD refused
        """
        group = self.channel_groups.get(group_name) if group_name else self.master_group
        try:
            return self.system.play_sound(sound, group, True)
        except Exception as e:
            audio_log('ERROR', "Failed to play sound", {'group': group_name, 'error': str(e)})
            return None

    def voice(self, category: AudioCategory, index: int) -> 'FMODVoice':
        """Voice factory for AudioManager."""
        return FMODVoice(self, category.value, f'{category.value}_{index}')

    def update(self):
        """Update FMOD system. Must be called every frame."""
        if self.system:
            try:
                self.system.update()
            except Exception as e:
                audio_log('DEBUG', "FMOD update failed", {'error': str(e)})

    def cleanup(self):
        """Release all FMOD resources. Call before exiting."""
        if not self._initialized:
            return

        for sound in list(self.sounds):
            self.release_sound(sound)

        for group in self.channel_groups.values():
            try:
                group.release()
            except Exception:
                pass
        self.channel_groups.clear()

        if self.system:
            try:
                self.system.close()
                self.system.release()
            except Exception as e:
                audio_log('WARNING', "FMOD shutdown error", {'error': str(e)})
            self.system = None

        self._initialized = False
        audio_log('INFO', "FMOD audio system released")


class FMODVoice(PlaybackVoice):
    """One FMOD channel slot with persistent settings.

    FMOD hands out a new Channel for every play; the settings kept here
    are re-applied to it before it is unpaused.
    """

    def __init__(self, audio_system: FMODSystem, group_name: str, name: str):
        """Create a voice.

        Args:
            audio_system: The FMODSystem instance
            group_name: Channel group used unless effects are bypassed
            name: Name for log context
        """
        self.audio = audio_system
        self.group_name = group_name
        self.name = name
        self._channel = None
        self._clip: Optional[Clip] = None
        self._volume = 1.0
        self._pitch = DEFAULT_PITCH
        self._loop = False
        self._positional = False
        self._position: Vec3 = (0.0, 0.0, 0.0)
        self._muted = False
        self._bypass = False

    def _guard(self, action: str, fn):
        """Run fn on the live channel, ignoring channels that already ended."""
        if self._channel is None:
            return None
        try:
            return fn(self._channel)
        except Exception as e:
            if not _expected_error(e):
                audio_log('WARNING', f"Error during channel {action}", {
                    'voice': self.name,
                    'error': str(e)
                })
            return None

    # === Clip ===

    def load(self, clip: Clip):
        self.stop()
        self._clip = clip

    def unload(self):
        self.stop()
        self._clip = None

    @property
    def clip(self) -> Optional[Clip]:
        return self._clip

    # === Transport ===

    def play(self):
        self.stop()
        if self._clip is None or self._clip.data is None:
            return

        group = None if self._bypass else self.group_name
        self._channel = self.audio.play_paused(self._clip.data, group)
        if self._channel is None:
            return

        self._apply_all()
        self._guard('unpause', lambda ch: setattr(ch, 'paused', False))

    def stop(self):
        if self._channel is not None:
            self._guard('stop', lambda ch: ch.stop())
            self._channel = None

    def is_playing(self) -> bool:
        if self._channel is None:
            return False
        try:
            return bool(self._channel.is_playing)
        except Exception as e:
            # Channel became invalid: sound ended or was stolen
            audio_log('DEBUG', "Channel query failed (likely ended)", {
                'voice': self.name,
                'error': str(e)
            })
            self._channel = None
            return False

    def elapsed(self) -> float:
        result = self._guard('position query', lambda ch: ch.get_position(TIMEUNIT.MS))
        return (result or 0) / 1000.0

    # === Settings ===

    def _apply_all(self):
        self._apply_volume()
        self._apply_pitch()
        self._apply_loop()
        self._apply_positional()
        self._guard('mute', lambda ch: setattr(ch, 'mute', self._muted))

    def _apply_volume(self):
        self._guard('volume', lambda ch: setattr(ch, 'volume', self._volume))

    def _apply_pitch(self):
        self._guard('pitch', lambda ch: setattr(ch, 'pitch', self._pitch))

    def _apply_loop(self):
        self._guard('loop', lambda ch: setattr(ch, 'loop_count', -1 if self._loop else 0))

    def _apply_positional(self):
        def apply(ch):
            if self._positional:
                ch.mode = MODE.THREED
                # Game: X=East, Y=North, Z=Up -> FMOD: X=East, Y=Up, Z=North
                x, y, z = self._position
                ch.position = [x, z, y]
            else:
                ch.mode = MODE.TWOD
        self._guard('positional', apply)

    def set_volume(self, volume: float):
        self._volume = max(0.0, min(1.0, volume))
        self._apply_volume()

    def set_pitch(self, pitch: float):
        self._pitch = max(PITCH_MIN, min(PITCH_MAX, pitch))
        self._apply_pitch()

    def set_looping(self, loop: bool):
        self._loop = loop
        self._apply_loop()

    def set_positional(self, enabled: bool, position: Optional[Vec3] = None):
        self._positional = enabled
        if position is not None:
            self._position = (float(position[0]), float(position[1]),
                              float(position[2]) if len(position) > 2 else 0.0)
        self._apply_positional()

    def set_muted(self, muted: bool):
        self._muted = muted
        self._guard('mute', lambda ch: setattr(ch, 'mute', muted))

    def set_bypass_effects(self, bypass: bool):
        # Takes effect on the next play(): channels cannot change group mid-play here
        self._bypass = bypass

    def release(self):
        self.stop()
        self._clip = None

    def __repr__(self):
        return f"<FMODVoice {self.name} playing={self._channel is not None}>"
