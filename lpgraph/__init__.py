"""
lpgraph - Labeled property graph schemas, validation and bulk loading
"""

__version__ = "1.0.0"
