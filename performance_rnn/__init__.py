"""
performance_rnn - live generative piano performance from a recurrent model.

A three-layer LSTM emits one performance event at a time - note-on,
note-off, time-shift or velocity-change - and each event is played as soon
as it is sampled.  Generation runs on the asyncio event loop a little ahead
of the audio clock, correcting itself when it drifts.

Pieces, leaves first:

- **Event vocabulary** (``performance_rnn.events``). 388 discrete events in a
  fixed order, with ``encode()``/``decode()``.
- **Conditioning** (``performance_rnn.conditioning``). Note density and
  pitch-class histogram side-input, or a neutral "ignore me" vector.
- **Recurrent stepper** (``performance_rnn.stepper``). Pure
  ``(state, last event, conditioning) -> (state, logits)`` transition.
- **Sampler** (``performance_rnn.sampler``). Categorical draw, seedable.
- **Event actuator** (``performance_rnn.actuator``). Piano time, active
  notes, note lifetime rules, sink and MIDI output.
- **Session** (``performance_rnn.session``). The real-time scheduler.

Integration: MIDI output and input via mido, OSC control via python-osc,
recording to standard MIDI files, YAML configuration.

Minimal example:

    ```python
    import asyncio
    import performance_rnn

    weights = performance_rnn.ModelWeights.load_npz("performance_rnn.npz")
    session = performance_rnn.PerformanceSession(weights, performance_rnn.SilentSink())
    session.set_pitch_histogram(performance_rnn.histograms.key_histogram("D", "minor"))

    asyncio.run(session.play())
    ```

Package-level exports: ``PerformanceSession``, ``PerformanceConfig``,
``ModelWeights``, ``SilentSink``.
"""

import performance_rnn.config
import performance_rnn.histograms
import performance_rnn.session
import performance_rnn.sinks
import performance_rnn.weights


PerformanceSession = performance_rnn.session.PerformanceSession
PerformanceConfig = performance_rnn.config.PerformanceConfig
ModelWeights = performance_rnn.weights.ModelWeights
SilentSink = performance_rnn.sinks.SilentSink
