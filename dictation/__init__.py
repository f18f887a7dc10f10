"""Components of a voice dictation daemon: chunking, transcript merging, model specs, configuration, debug recordings, health flags and a control socket."""

__version__ = "0.1.0"