"""taskflow: personal task tracking with AI-assisted prioritization."""

__version__ = "0.1.0"
