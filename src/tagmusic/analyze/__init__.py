"""
Analysis Module: tempo, key and loudness for a single audio file.

- tempo: pure median inter-beat-interval estimator
- beats / key / loudness: wrappers around external analyzers
"""

__all__ = ["tempo", "beats", "key", "loudness"]
