"""toolvault: credential resolution and storage for tool-execution runtimes."""

__version__ = "0.1.0"
