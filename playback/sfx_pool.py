"""SFX Voice Pool for the playback coordinator.

Manages pooled playback handles for one-shot sound effects with:
- A fixed arena of pool_size * 2 voice slots, pool_size filled up front
- Reuse of idle voices, new voices when the idle queue runs dry
- A hard cap on active voices (oldest voice is stolen at the cap)
- Return-to-pool monitors that notice early stops as well as clip end
"""

from collections import deque
from typing import Callable, Deque, List, Optional

from playback.clip import AudioCategory, Clip, PlaybackVoice, Vec3
from playback.clip_cache import ClipCache
from playback.errors import Diagnostic, report
from playback.logging import audio_log
from playback.mixer import VolumeMixer
from playback.scheduler import Task, TaskScheduler
from state.constants import SFX_POOL_SIZE, POOL_GROWTH_FACTOR, DEFAULT_PITCH


class SfxVoice:
    """One arena slot: a playback handle plus what it is playing."""

    def __init__(self, index: int, handle: PlaybackVoice):
        self.index = index
        self.handle = handle
        self.name = f'sfx_{index}'
        self.state = 'pooled'  # 'pooled', 'active', 'destroyed'
        self.active_fade = None
        self.monitor: Optional['ReturnMonitor'] = None
        self._reset_fields()

    def _reset_fields(self):
        self.clip: Optional[Clip] = None
        self.clip_name: Optional[str] = None
        self.volume = 0.0
        self.level = 0.0
        self.pitch = DEFAULT_PITCH
        self.looping = False
        self.spatial = False
        self.position: Optional[Vec3] = None

    @property
    def is_active(self) -> bool:
        return self.state == 'active'

    def __repr__(self):
        return f"<SfxVoice {self.index} {self.state} {self.clip_name}>"


class ReturnMonitor(Task):
    """Returns a voice to the pool once its sound has finished.

    Finished means the handle stopped playing (detected on the next
    tick, including external early stops) or the clip duration has
    elapsed. A handle still playing at the duration gets one more tick.
    """

    def __init__(self, pool: 'VoicePool', voice: SfxVoice, duration: float):
        super().__init__(f"return:{voice.name}")
        self.pool = pool
        self.voice = voice
        self.duration = duration
        self.grace = False

    def step(self, dt: float) -> bool:
        voice = self.voice
        if voice.monitor is not self:
            # Voice was returned or reused by someone else
            return True

        self.elapsed += dt
        if voice.handle.is_playing():
            if self.elapsed < self.duration:
                return False
            if not self.grace:
                self.grace = True
                return False

        voice.monitor = None
        self.pool.release(voice)
        return True


class VoicePool:
    """Pool-based playback handle management for sound effects."""

    def __init__(self, voice_factory: Callable[[int], PlaybackVoice], cache: ClipCache,
                 mixer: VolumeMixer, scheduler: TaskScheduler,
                 pool_size: int = SFX_POOL_SIZE, max_active: Optional[int] = None):
        """Initialize the voice pool.

        Args:
            voice_factory: Creates the playback handle for an arena slot index
            cache: Clip cache used to resolve effect names
            mixer: Volume mixer (sfx volume/mute)
            scheduler: Task scheduler the return monitors run on
            pool_size: Voices allocated up front
            max_active: Hard cap on active voices (default pool_size * 2)
        """
        self._factory = voice_factory
        self.cache = cache
        self.mixer = mixer
        self.scheduler = scheduler
        self.pool_size = pool_size
        self.capacity = pool_size * POOL_GROWTH_FACTOR
        self.max_active = min(max_active or self.capacity, self.capacity)

        self._slots: List[Optional[SfxVoice]] = [None] * self.capacity
        self._idle: Deque[SfxVoice] = deque()
        self._active: List[SfxVoice] = []  # Oldest first
        self.created = 0
        self.destroyed = 0

        for index in range(pool_size):
            self._idle.append(self._create(index))

        audio_log('INFO', "Voice pool initialized", {
            'pool_size': pool_size,
            'capacity': self.capacity,
            'max_active': self.max_active
        })

    # === Playback ===

    def play(self, name: str, volume_scale: float = 1.0, pitch: float = DEFAULT_PITCH,
             position: Optional[Vec3] = None) -> Optional[SfxVoice]:
        """Play a one-shot effect.

        Args:
            name: Logical sfx clip name
            volume_scale: Volume multiplier (0, 1]
            pitch: Playback pitch (1.0 = normal)
            position: Optional (x, y, z) for positional playback

        Returns:
            The active SfxVoice, or None if nothing was played
        """
        if not name or self.mixer.is_muted(AudioCategory.SFX) or volume_scale <= 0:
            return None

        clip = self.cache.get(name, AudioCategory.SFX)
        if clip is None:
            return None

        voice = self.acquire()
        self._configure(voice, clip, name, volume_scale, pitch, position)
        voice.handle.play()
        voice.monitor = ReturnMonitor(self, voice, clip.duration)
        self.scheduler.add(voice.monitor)

        audio_log('DEBUG', "Sfx started", {
            'voice': voice.name,
            'clip': name,
            'volume': round(voice.volume, 3),
            'pitch': pitch,
            'spatial': voice.spatial
        })
        return voice

    def _configure(self, voice: SfxVoice, clip: Clip, name: str, volume_scale: float,
                   pitch: float, position: Optional[Vec3]):
        """Apply clip and playback settings to an acquired voice."""
        voice.clip = clip
        voice.clip_name = name
        voice.level = volume_scale
        voice.volume = self.mixer.sfx_volume(volume_scale)
        voice.pitch = pitch
        voice.looping = False
        voice.spatial = position is not None
        voice.position = tuple(position) if position is not None else None

        handle = voice.handle
        handle.load(clip)
        handle.set_volume(voice.volume)
        handle.set_pitch(pitch)
        handle.set_looping(False)
        handle.set_muted(self.mixer.is_muted(AudioCategory.SFX))
        handle.set_positional(voice.spatial, voice.position)

    # === Checkout / return ===

    def acquire(self) -> SfxVoice:
        """Check out a voice and mark it active.

        At the active cap the oldest active voice is stolen. Below it:
        an idle voice, else a new voice in a free slot.
        """
        voice = None
        if len(self._active) < self.max_active:
            voice = self._take_idle_or_create()
        if voice is None:
            victim = self._active[0]
            report(Diagnostic.VOICE_STOLEN, "Active voice cap reached, stealing oldest voice", {
                'voice': victim.name,
                'clip': victim.clip_name,
                'max_active': self.max_active
            })
            victim.handle.stop()
            self.release(victim)
            voice = self._take_idle_or_create()

        voice.state = 'active'
        self._active.append(voice)
        return voice

    def _take_idle_or_create(self) -> Optional[SfxVoice]:
        if self._idle:
            return self._idle.popleft()

        index = self._free_slot()
        if index is None:
            return None
        report(Diagnostic.POOL_EXHAUSTED_FALLBACK, "Voice pool empty, constructing new voice", {
            'slot': index,
            'active': len(self._active)
        })
        return self._create(index)

    def release(self, voice: SfxVoice) -> bool:
        """Return an active voice to the pool.

        Stops and resets the handle and puts the voice back on the idle
        queue. Idempotent: returns False if the voice was not active.

        idle + active never exceeds capacity: voices only exist in arena
        slots, so growth past 2 * pool_size is refused at creation time
        rather than undone here.
        """
        if voice.state != 'active' or voice not in self._active:
            return False

        self._active.remove(voice)
        if voice.monitor is not None:
            voice.monitor.cancel()
            voice.monitor = None
        if voice.active_fade is not None:
            voice.active_fade.cancel()
            voice.active_fade = None

        handle = voice.handle
        handle.stop()
        handle.unload()
        handle.set_pitch(DEFAULT_PITCH)
        handle.set_positional(False, None)
        handle.set_bypass_effects(False)
        handle.set_looping(False)
        voice._reset_fields()

        voice.state = 'pooled'
        self._idle.append(voice)
        return True

    def stop_all(self) -> int:
        """Stop and return every active voice. Returns how many were stopped."""
        voices = list(self._active)
        for voice in voices:
            voice.handle.stop()
            self.release(voice)
        return len(voices)

    def clear(self) -> int:
        """Stop everything and destroy every voice, freeing all slots.

        Returns:
            Number of voices destroyed
        """
        self.stop_all()
        count = len(self._idle)
        while self._idle:
            self._destroy(self._idle.popleft())
        audio_log('INFO', "Voice pool cleared", {'destroyed': count})
        return count

    # === Slots ===

    def _free_slot(self) -> Optional[int]:
        for index, slot in enumerate(self._slots):
            if slot is None:
                return index
        return None

    def _create(self, index: int) -> SfxVoice:
        voice = SfxVoice(index, self._factory(index))
        self._slots[index] = voice
        self.created += 1
        return voice

    def _destroy(self, voice: SfxVoice):
        voice.handle.release()
        voice.state = 'destroyed'
        if self._slots[voice.index] is voice:
            self._slots[voice.index] = None
        self.destroyed += 1

    # === Queries ===

    def set_muted(self, muted: bool):
        """Apply the sfx mute flag to every active voice."""
        for voice in self._active:
            voice.handle.set_muted(muted)

    def references(self, clip: Clip) -> bool:
        """True if any active or idle voice still holds the clip."""
        for voice in list(self._active) + list(self._idle):
            if voice.clip is clip or voice.handle.clip is clip:
                return True
        return False

    def is_playing_clip(self, clip: Clip) -> bool:
        """True if an active voice is currently playing the clip."""
        return any(v.clip is clip and v.handle.is_playing() for v in self._active)

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def active_voices(self) -> List[SfxVoice]:
        return list(self._active)

    def get_pool_status(self) -> dict:
        """Get status information about the pool.

        Returns:
            Dict with pool status information
        """
        return {
            'pool_size': self.pool_size,
            'capacity': self.capacity,
            'max_active': self.max_active,
            'idle': self.idle_count,
            'active': self.active_count,
            'created': self.created,
            'destroyed': self.destroyed,
        }
