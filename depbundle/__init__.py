"""depbundle - hierarchical edge bundling for model dependency graphs."""

__version__ = "0.1.0"
