"""
Sound Loader for the playback coordinator.

Resolves logical clip names to loaded FMOD sounds. Supports both an
encrypted clip pack (for distribution) and raw sound files (for
development):

1. The open clip pack, matched by file stem
2. Every search folder, recursively, for <name>.<ext> (case-insensitive)
3. The category default path (<default>/<name>.mp3 or .wav)
"""

import os
from typing import Dict, Iterable, List, Optional

from playback.clip import AudioCategory, Clip, ClipResolver
from playback.clip_pack import ClipPack
from playback.logging import audio_log
from state.constants import (
    SEARCH_FOLDERS, DEFAULT_CLIP_FOLDER, AUDIO_EXTENSIONS, DEFAULT_EXTENSIONS,
    CLIP_PACK_FILE, CLIP_PACK_PASSWORD_ENV
)


class SoundLoader(ClipResolver):
    """ClipResolver backed by an FMODSystem.

    The audio system only needs create_sound(source, category),
    sound_length(sound) and release_sound(sound).
    """

    def __init__(self, audio_system, search_folders: Iterable[str] = SEARCH_FOLDERS,
                 default_folder: str = DEFAULT_CLIP_FOLDER):
        """Initialize the sound loader.

        Args:
            audio_system: FMODSystem (or compatible) used to create sounds
            search_folders: Folders searched recursively; '{category}' is
                replaced by 'music' or 'sfx'
            default_folder: Folder of the per-category fallback path
        """
        self.audio = audio_system
        self.search_folders = list(search_folders)
        self.default_folder = default_folder
        self._loaded: Dict[str, object] = {}  # Source key -> Sound
        self._pack: Optional[ClipPack] = None

    # === Pack ===

    def init_pack(self, pack_file: str = CLIP_PACK_FILE, password: Optional[str] = None) -> bool:
        """Open an encrypted clip pack, consulted before raw files.

        Args:
            pack_file: Path to the pack
            password: Pack password (default: the CLIP_PACK_PASSWORD env var)

        Returns:
            True if the pack opened
        """
        password = password or os.environ.get(CLIP_PACK_PASSWORD_ENV)
        if not password:
            audio_log('INFO', "No clip pack password, using raw files", {'file': pack_file})
            return False

        pack = ClipPack(pack_file)
        if not pack.open(password):
            audio_log('WARNING', "Failed to open clip pack, using raw files", {'file': pack_file})
            return False

        self._pack = pack
        return True

    def cleanup_pack(self):
        """Close the pack file if open."""
        if self._pack:
            self._pack.close()
            self._pack = None

    @property
    def uses_pack(self) -> bool:
        return self._pack is not None

    # === Resolution ===

    def find_file(self, name: str, category: AudioCategory) -> Optional[str]:
        """Locate the file for a clip name on disk.

        Returns:
            Path of the first match, or None
        """
        target = name.lower()
        extensions = tuple(ext.lower() for ext in AUDIO_EXTENSIONS)

        for folder in self._folders(category):
            if not os.path.isdir(folder):
                continue
            for dirpath, dirs, files in os.walk(folder):
                dirs.sort()
                for filename in sorted(files):
                    stem, ext = os.path.splitext(filename)
                    if stem.lower() == target and ext.lower() in extensions:
                        return os.path.join(dirpath, filename)

        default_path = os.path.join(self.default_folder, name + DEFAULT_EXTENSIONS[category.value])
        if os.path.isfile(default_path):
            return default_path
        return None

    def _folders(self, category: AudioCategory) -> List[str]:
        folders = []
        for folder in self.search_folders:
            folder = folder.replace('{category}', category.value)
            if folder not in folders:
                folders.append(folder)
        return folders

    def resolve(self, name: str, category: AudioCategory) -> Optional[Clip]:
        """Load a clip by logical name.

        Args:
            name: Logical clip name (matched case-insensitively)
            category: MUSIC or SFX

        Returns:
            The Clip, or None if no source matches
        """
        if not name:
            return None

        sound = None
        if self._pack is not None:
            sound = self._load_from_pack(name, category)
        if sound is None:
            sound = self._load_from_disk(name, category)
        if sound is None:
            audio_log('WARNING', "Clip not found", {
                'name': name,
                'category': category.value,
                'folders': self._folders(category)
            })
            return None

        return Clip(name, category, sound, self.audio.sound_length(sound))

    def _load_from_pack(self, name: str, category: AudioCategory):
        rel_path = self._pack.find(name)
        if rel_path is None:
            return None
        key = f'pack:{category.value}:{rel_path.lower()}'
        if key in self._loaded:
            return self._loaded[key]

        data = self._pack.get(rel_path)
        if not data:
            return None
        sound = self.audio.create_sound(data, category)
        if sound is not None:
            self._loaded[key] = sound
            audio_log('DEBUG', "Loaded sound from pack", {'name': name, 'path': rel_path})
        return sound

    def _load_from_disk(self, name: str, category: AudioCategory):
        path = self.find_file(name, category)
        if path is None:
            return None
        key = f'file:{category.value}:{os.path.normcase(os.path.abspath(path))}'
        if key in self._loaded:
            return self._loaded[key]

        sound = self.audio.create_sound(path, category)
        if sound is not None:
            self._loaded[key] = sound
            audio_log('DEBUG', "Loaded sound from file", {'name': name, 'path': path})
        return sound

    def unload_unused(self, retained: Iterable[Clip]) -> int:
        """Release every loaded sound that no retained clip uses.

        Returns:
            Number of sounds released
        """
        keep = {id(clip.data) for clip in retained}
        released = 0
        for key, sound in list(self._loaded.items()):
            if id(sound) in keep:
                continue
            del self._loaded[key]
            self.audio.release_sound(sound)
            released += 1
        if released:
            audio_log('INFO', "Released unused sounds", {'released': released, 'loaded': len(self._loaded)})
        return released

    @property
    def loaded_count(self) -> int:
        return len(self._loaded)
