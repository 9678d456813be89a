"""hookwire: interaction routing and command lifecycle for Discord bots."""

__version__ = "0.3.0"
