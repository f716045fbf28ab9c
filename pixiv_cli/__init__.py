"""
pixiv-cli: download every image of a Pixiv artwork, with fallbacks.
"""

__version__ = "0.1.0"
