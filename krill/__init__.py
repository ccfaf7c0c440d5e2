"""
krill: a terminal pager for files, pipes and manual pages.
"""
__version__ = "0.9.0"
