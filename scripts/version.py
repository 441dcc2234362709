"""Version of the Xcode Cloud TUI."""

__version__ = "0.1.0"
