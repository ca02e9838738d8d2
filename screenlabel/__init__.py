"""Screenshot labelling through an ordered chain of classification providers."""

__version__ = "0.1.0"
