"""Building blocks for provisioning Lima virtual machines and their container runtimes."""

__version__ = "0.1.0"