"""montage: line-level change history for the text files in your repositories."""

__version__ = "0.1.0"
