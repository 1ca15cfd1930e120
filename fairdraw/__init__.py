"""fairdraw - provably fair card draws via commit-reveal."""

__version__ = "0.1.0"
