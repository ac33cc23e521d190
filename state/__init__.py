"""State module - audio constants, configuration and volume settings."""

from .config import AudioConfig
from .volume_settings import VolumeSettings
