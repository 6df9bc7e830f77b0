"""know: retrieval-augmented question answering over a personal document collection."""

__version__ = "0.1.0"
