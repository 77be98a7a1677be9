"""
RANA
====
Provider routing, response caching and cost tracking for LLM applications.
"""

__version__ = "1.0.0"
