"""Beatcutter: beat-synchronized media timeline engine."""

__version__ = "0.1.0"
