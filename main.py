"""
Demo loop for the playback coordinator.

Opens a minimal pygame window and drives the AudioManager once per
frame. Keys:
    1       Play 'bgm' on track 0 (fade in)
    2       Play the 'test' sound effect
    S       Stop all music (fade out)
    M / N   Toggle music / sfx mute
    + / -   Master volume up / down
    E       Evict unused clips
    F12     Toggle audio debug logging
    ESC     Quit
"""

import pygame

from state.config import AudioConfig
from state.constants import WINDOW_SIZE, WINDOW_TITLE, FPS, VOLUME_STEP, CLIP_PACK_FILE
from fmod_audio import FMODSystem
from playback.loader import SoundLoader
from playback.logging import AudioLogger
from playback.manager import AudioManager
from utils.helpers import format_volume


class Demo:
    """Main demo class wiring input to the audio control surface."""

    def __init__(self, config: AudioConfig = None):
        pygame.init()
        self.screen = pygame.display.set_mode(WINDOW_SIZE)
        pygame.display.set_caption(WINDOW_TITLE)
        self.clock = pygame.time.Clock()

        self.fmod = FMODSystem()
        self.fmod.init(max_channels=64)

        self.sounds = SoundLoader(self.fmod)
        # Try the encrypted pack first, fall back to raw files
        self.sounds.init_pack(CLIP_PACK_FILE)

        self.audio = AudioManager(self.sounds, self.fmod.voice, config)
        self.running = True

        # Audio debug logging (toggle with F12)
        self.audio_logger = AudioLogger.get_instance()
        self.audio_logger.enable(False)

        print("1=Music. 2=Sfx. S=Stop music. M/N=Mute. +/- volume. E=Evict. F12=Debug. ESC quit.\n")

    def run(self):
        """Run the main loop."""
        while self.running:
            dt = self.clock.tick(FPS) / 1000.0
            self._handle_events()
            self.audio.update(dt)
            self.fmod.update()

        self.cleanup()

    def _handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            if event.type != pygame.KEYDOWN:
                continue

            if event.key == pygame.K_ESCAPE:
                self.running = False
            elif event.key == pygame.K_1:
                self.audio.play_music(0, 'bgm', 0.3, fade_in=True)
            elif event.key == pygame.K_2:
                self.audio.play_sfx('test', 0.3)
            elif event.key == pygame.K_s:
                self.audio.stop_all_music(fade_out=True)
            elif event.key == pygame.K_m:
                muted = self.audio.toggle_music_mute()
                print(f"Music {'muted' if muted else 'unmuted'}")
            elif event.key == pygame.K_n:
                muted = self.audio.toggle_sfx_mute()
                print(f"Sfx {'muted' if muted else 'unmuted'}")
            elif event.key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
                self._adjust_master(VOLUME_STEP)
            elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                self._adjust_master(-VOLUME_STEP)
            elif event.key == pygame.K_e:
                removed = self.audio.evict_unused_resources(force=True)
                print(f"Evicted {removed} clips")
            elif event.key == pygame.K_F12:
                self.audio_logger.toggle()

    def _adjust_master(self, delta: float):
        volume = self.audio.set_master_volume(self.audio.settings.master + delta)
        print(f"Master volume {format_volume(volume)}")

    def cleanup(self):
        """Clean up all resources."""
        self.audio.shutdown()
        self.sounds.cleanup_pack()
        self.fmod.cleanup()
        pygame.quit()


def main():
    """Entry point for the demo."""
    Demo().run()


if __name__ == '__main__':
    main()
