"""Models of a small x86 teaching kernel's core pieces and user programs."""

__version__ = "0.1.0"