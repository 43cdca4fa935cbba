"""
dogewallet - Dogecoin transaction and HD key engine
"""

__version__ = "0.3.0"
