"""Django Stays - shared-property reservation scheduling and possession handoff."""

__version__ = "0.1.0"
