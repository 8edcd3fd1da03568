"""treesweep - concurrent directory scanning with a journaled trash."""

__version__ = "0.1.0"
