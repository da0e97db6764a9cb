"""montage command-line interface."""
