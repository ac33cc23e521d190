"""
Audio constants and configuration defaults for the playback coordinator.

All tunable parameters and constant values are centralized here
for easy modification.
"""

# =============================================================================
# DEMO WINDOW / LOOP
# =============================================================================
WINDOW_SIZE = (1, 1)  # Minimal window (audio-only demo)
WINDOW_TITLE = "Audio Coordinator"
FPS = 60

# =============================================================================
# MUSIC TRACKS
# =============================================================================
MUSIC_TRACK_COUNT = 4
CROSSFADE_DURATION = 1.5  # Seconds for every track fade

# =============================================================================
# SFX VOICE POOL
# =============================================================================
SFX_POOL_SIZE = 10
POOL_GROWTH_FACTOR = 2  # idle + active never exceeds pool size * factor
DEFAULT_PITCH = 1.0
PITCH_MIN = 0.5
PITCH_MAX = 2.0

# =============================================================================
# AUDIO VOLUMES
# =============================================================================
MASTER_VOLUME_DEFAULT = 1.0
MUSIC_VOLUME_DEFAULT = 0.7
SFX_VOLUME_DEFAULT = 0.8
MUSIC_MUTED_DEFAULT = False
SFX_MUTED_DEFAULT = False
VOLUME_STEP = 0.05

# Channel group base volumes (FMOD groups, applied under the mixer)
GROUP_VOLUMES = {
    'music': 1.0,
    'sfx': 1.0,
}

# =============================================================================
# ASSET RESOLUTION
# =============================================================================
SEARCH_FOLDERS = [
    'assets/audio',
    'assets',
    'assets/audio/{category}',
    'assets/resources/audio',
]
DEFAULT_CLIP_FOLDER = 'assets/audio'
AUDIO_EXTENSIONS = ('.mp3', '.wav', '.ogg', '.aiff')
DEFAULT_EXTENSIONS = {
    'music': '.mp3',
    'sfx': '.wav',
}

# 3D sounds: distances where attenuation starts / ends
SFX_MIN_DISTANCE = 2.0
SFX_MAX_DISTANCE = 60.0

# =============================================================================
# CLIP PACKS
# =============================================================================
CLIP_PACK_FILE = 'game.clips'
CLIP_PACK_PASSWORD_ENV = 'CLIP_PACK_PASSWORD'
