"""Status bar blocks that read system information and decide how it is shown."""

__version__ = "0.1.0"