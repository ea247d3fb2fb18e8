"""Build a hybrid app's web sources into a deployable asset bundle."""

__version__ = "0.1.0"
