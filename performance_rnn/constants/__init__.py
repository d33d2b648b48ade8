"""Constants for performance_rnn.

This package contains two sets of constants:

- ``performance_rnn.constants.timing`` - Event time resolution and the scheduler's default tunables
- ``performance_rnn.constants.velocity`` - MIDI velocity and status byte constants

The most commonly used values are re-exported here, so
``performance_rnn.constants.STEPS_PER_SECOND`` works directly.
"""

# Re-export the most used values.
# These match the values in performance_rnn.constants.timing and .velocity.

STEPS_PER_SECOND = 100
MAX_SHIFT_STEPS = 100

MIN_MIDI_PITCH = 0
MAX_MIDI_PITCH = 127
VELOCITY_BINS = 32
