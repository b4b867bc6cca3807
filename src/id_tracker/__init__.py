"""
ID Tracker: identifier collection service with an administrative web page
"""

__version__ = "1.0.0"
