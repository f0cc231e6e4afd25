"""wordclasses: unsupervised induction of word classes from n-gram contexts."""

__version__ = "0.1.0"
