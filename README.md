# dictation

Building blocks for a voice dictation daemon on Linux. The package provides:

- splitting long recordings into overlapping chunks and merging the transcripts;
- parsing model specifications and finding installed models;
- reading the daemon configuration;
- saving debug recordings;
- health flags;
- a length-prefixed JSON control socket.

It uses only the Python standard library and needs Python 3.11 or newer.

## Installing

```
pip install .
```

## Chunked transcription

Long recordings go past the context limit of most speech models. They are cut
into overlapping pieces and transcribed one piece at a time:

```python
from dictation.chunking import ChunkConfig, transcribe_chunked

config = ChunkConfig(max_chunk_seconds=30, overlap_seconds=2, sample_rate=16000)
text = transcribe_chunked(samples, config, my_transcribe)
```

How a recording is handled depends on its length:

- A recording no longer than one chunk goes straight to `my_transcribe`. Any error it raises propagates.
- A longer recording is cut into pieces with `audio_chunks`. A piece whose transcription raises is skipped.
- The results are joined with `merge_chunks`. It drops up to ten words that repeat where two pieces meet, and the comparison ignores ASCII case:

```python
from dictation.chunking import merge_chunks

merge_chunks(["hello world foo", "foo bar baz"])  # "hello world foo bar baz"
```

If your engine reports a time for each word, use `dictation.chunk_merge` instead:

- `chunk_boundaries_vad` ends each piece at the quietest 25 ms frame within about a second of the ideal cut. It uses `find_silence_boundary` to find that frame.
- `transcribe_chunked_with_timestamps` takes a function that returns a `TimestampedChunkResult`: a text plus a list of `TimedToken(text, start, end)`. It shifts the word times to absolute positions.
- `merge_chunks_timestamped` merges the pieces by word time, not by matching text. Standalone punctuation tokens are attached without a space.

## Model specifications

```python
from dictation.model_selector import parse_model_spec

spec = parse_model_spec("parakeet:default")
str(spec)            # "parakeet:default"
spec.model_path()    # ~/.config/voice-dictation/models/parakeet
spec.is_available()  # True once encoder-model.onnx and decoder_joint-model.onnx exist
```

A string without a `:`, or one naming an engine other than `parakeet`, raises
`ModelSpecError`, a subclass of `ValueError`.

## Configuration

`dictation.config.load_config(path=None)` reads a TOML file. With no path it
reads `~/.config/voice-dictation/config.toml`. `parse_config(text)` parses a
string instead. The result is a `Config` whose `daemon` is a `DaemonConfig`.

```toml
[daemon]
audio_device = "default"
sample_rate = "16000"
model = "parakeet:default"
```

- `audio_device` and `sample_rate` are required.
- Every other key takes its default when left out:

  | Key | Default |
  | --- | --- |
  | `model` | `"parakeet:default"` |
  | `enable_acronyms` | `true` |
  | `enable_punctuation` | `true` |
  | `enable_grammar` | `true` |
  | `silence_threshold_db` | `-60.0` |
  | `debug_audio` | `false` |
  | `trailing_buffer_ms` | `750` |
  | `audio_backend` | `"auto"` |
  | `idle_release_timeout_secs` | `30` |
  | `media_resume_delay_ms` | `25` |
  | `engine_idle_timeout_secs` | `300` |

- `preview_model` is accepted as another name for `model`.
- A missing table, a missing required key or a value of the wrong type raises `ValueError`.

`db_to_linear(db)` converts a decibel level to a linear amplitude.

## Debug recordings

`dictation.debug_audio.save_debug_audio(samples, sample_rate, metadata)` writes two files:

- a mono 16-bit WAV file;
- a JSON file built from an `AudioMetadata`.

Both are named after the metadata timestamp, for example
`recording_20240101_120000.123.wav`. They go to `/tmp/voice-dictation-debug`,
or to the directory passed as `debug_dir`. The function returns the path of the WAV file.

After saving, `cleanup_old_files` keeps only the 50 newest recordings.

`is_debug_audio_enabled()` returns true in either case:

- `DICTATION_LOG` contains `debug` or `trace`;
- `VOICE_DICTATION_DEBUG_AUDIO` is `1` or `true`.

## Health

`dictation.health.HealthState` holds these flags:

- `audio_healthy`, `engine_healthy` and `gui_healthy`;
- the time of the last audio received;
- the last error.

`is_healthy()` is true once the engine is loaded.

## Control socket

`dictation.control_ipc.open_control_server(path)` binds a Unix socket at
`path`, replacing a stale file. Every frame on the socket is a 4-byte
big-endian length followed by a JSON body.

```python
from dictation.control_ipc import Ready, open_control_server

async with open_control_server("/tmp/dictation-control.sock") as server:
    await server.try_accept()           # waits up to 10 ms for a client
    await server.broadcast(Ready())     # clients that fail are dropped
    msg = await server.receive_from_any()
```

The message types are subclasses of `ControlMessage`:

- `Ready`, `Confirm`, `ProcessingStarted` and `Complete`;
- `StartRecording`, `StopRecording`, `StatusQuery` and `Shutdown`;
- `TranscriptionUpdate(text, is_final)` and `StatusResponse(state, session_active)`.

`encode_message` converts a message to its JSON body and `decode_message` converts it back:

```python
from dictation.control_ipc import Ready, TranscriptionUpdate, encode_message

encode_message(Ready())                             # b'"Ready"'
encode_message(TranscriptionUpdate("hi", False))    # b'{"TranscriptionUpdate":{"text":"hi","is_final":false}}'
```

`decode_message` raises `ValueError` for anything that is not a message.

When you are done, `close()` closes the clients and the listener and removes the socket file.

## What this package does not do

It is a set of components, not a running dictation program. It has none of the following:

- a command to start;
- audio capture from a microphone;
- a speech recognition engine;
- a GUI overlay;
- a D-Bus service;
- a way to type text into windows or to control media playback.

The transcribe functions passed to the chunking helpers must come from your own code.