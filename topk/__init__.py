"""HeavyKeeper top-k sketches for data streams, with a sliding-window variant."""

__version__ = "0.1.0"