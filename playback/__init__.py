"""Playback module - music tracks, sfx voice pool, clip cache and fades."""

from .clip import AudioCategory, Clip, ClipResolver, PlaybackVoice
from .logging import AudioLogger, audio_log
from .errors import Diagnostic
from .mixer import VolumeMixer
from .scheduler import Task, TaskScheduler
from .fades import FadeJob, FadeScheduler
from .clip_cache import ClipCache
from .sfx_pool import SfxVoice, VoicePool
from .tracks import MusicTrack, MusicTrackSet
from .manager import AudioManager
