"""Client for submitting image effect jobs, polling them and saving the result."""

__version__ = "0.1.0"
