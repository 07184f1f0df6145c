"""YT Link: fetch a YouTube video, publish it to object storage, return a signed link."""

__version__ = "1.0.0"
