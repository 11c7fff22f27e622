"""Product configurator resolution engine."""

__version__ = "0.1.0"
