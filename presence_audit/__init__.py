"""Local presence audit: profile scoring, competitor benchmarks and action plans."""

__version__ = "1.0.0"
