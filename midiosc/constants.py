"""Constants shared across the bridge."""

MIDI_MIN = 0
MIDI_MAX = 127
"""Inclusive bounds of note, velocity, controller, value and program numbers."""

CHANNEL_MIN = 1
CHANNEL_MAX = 16
"""Inclusive bounds of user-facing MIDI channel numbers."""

ALL_CHANNELS = "all"
"""Wildcard channel value in triggers and settings."""

ALL_DEVICES = "all"
"""Sentinel device name that opens every MIDI input."""

ALL_DEVICES_LABEL = "All Devices"
"""Display name of the all-devices option in device listings."""

DEFAULT_OSC_HOST = "127.0.0.1"
DEFAULT_OSC_PORT = 11000
"""AbletonOSC listens on UDP 11000 by default."""

OSC_TEST_ADDRESS = "/live/test"
OSC_TRACK_NAMES_ADDRESS = "/live/song/get/track_names"

DEFAULT_TRACK_CACHE_TTL = 5 * 60.0
"""Seconds before the track cache is considered stale."""

CONFIG_FILE_NAME = "config.json"
MAPPINGS_FILE_NAME = "mappings.json"
APP_DIR_NAME = "midiosc"

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
