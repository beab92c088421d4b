"""Work-order coordination between managers and a pool of workers."""

__version__ = "0.1.0"
