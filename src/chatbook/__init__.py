"""chatbook — import, browse and analyze ChatGPT and Claude conversation exports."""

__version__ = "0.1.0"
