"""Find Discord desktop installs and patch them to load Bashcord, from the command line."""

__version__ = "0.1.0"