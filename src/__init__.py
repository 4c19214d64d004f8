"""llmpipe — resilient LLM invocation pipeline."""

from llmpipe.version import __version__

__all__ = ["__version__"]
