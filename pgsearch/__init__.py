"""
pgsearch: proteogenomics database building and pI-fractionated search.
"""

__version__ = "0.1.0"
