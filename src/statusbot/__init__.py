"""Configuration core for the status notification bot fleet."""

__version__ = "0.4.0"
