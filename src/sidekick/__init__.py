"""Claims Sidekick offline sync agent."""

__version__ = "1.4.0"
