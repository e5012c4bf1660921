"""Two-way sync between a folder of Markdown notes and a Wolai database."""

__version__ = "0.3.0"
