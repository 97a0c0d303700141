"""
Tournament survivor pool: bracket graph construction and the result cascade.
"""
__version__ = "1.0.0"
