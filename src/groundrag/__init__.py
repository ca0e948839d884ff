"""groundrag — grounded question answering over a fixed knowledge base."""

__version__ = "0.1.0"
