"""
calconnect - find meeting times two people can both make.
"""

__version__ = "0.1.0"
