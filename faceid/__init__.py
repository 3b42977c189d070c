"""
Face identity service - landmark feature matching over partitioned workers
"""
__version__ = "1.0.0"
