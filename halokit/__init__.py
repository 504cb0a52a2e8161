"""Building blocks for characterising and linking dark-matter halos."""

__version__ = "0.1.0"