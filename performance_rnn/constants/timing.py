"""Performance timing constants.

Time inside a performance is measured in seconds of "piano time".  The model
only moves time forward through ``TimeShift`` events, each worth a whole
number of steps:

- `STEPS_PER_SECOND = 100` - one time-shift step is 10 ms
- `MAX_SHIFT_STEPS = 100` - the largest single shift is one second

The remaining values are the defaults for the real-time scheduler.  They can
all be overridden through :class:`performance_rnn.config.PerformanceConfig`.
"""

STEPS_PER_SECOND = 100
MAX_SHIFT_STEPS = 100

# Scheduler defaults

STEPS_PER_TICK = 10                 # Events generated per scheduler tick
GENERATION_BUFFER_SECONDS = 0.5     # How far ahead of the audio clock to generate
MAX_GENERATION_LAG_SECONDS = 1.0    # Snap piano time forward when this far behind
RESET_INTERVAL_SECONDS = 30.0       # Periodic full reset of the recurrent state

# Note lifetime

MAX_NOTE_DURATION_SECONDS = 3.0     # Force-release notes held longer than this
MIN_NOTE_DURATION_SECONDS = 0.5     # A note-off never lands sooner than this after its note-on

# MIDI input conditioning

MIDI_IN_CHORD_WINDOW_SECONDS = 1.0  # Notes closer together than this form one chord
MIDI_IN_IDLE_TIMEOUT_SECONDS = 30.0 # Turn conditioning off after this long without input
