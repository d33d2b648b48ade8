"""MIDI velocity, pitch and status constants.

Velocity is the MIDI attack strength (0-127).  The model does not emit raw
velocities; it emits one of `VELOCITY_BINS` buckets which are spread evenly
across the MIDI range and then normalised to 0.0-1.0 for the audio sink.
"""

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127

MIN_MIDI_PITCH = 0
MAX_MIDI_PITCH = 127

# Model velocity resolution
VELOCITY_BINS = 32

# Velocity in effect before the model emits its first velocity change
DEFAULT_VELOCITY = 100

# Channel-1 status bytes
MIDI_NOTE_ON = 0x90
MIDI_NOTE_OFF = 0x80
