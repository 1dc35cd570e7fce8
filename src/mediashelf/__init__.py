"""mediashelf - series and book lifecycle management for a media library."""

__version__ = "0.1.0"
