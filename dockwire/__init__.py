"""
dockwire - Docker Engine API client speaking HTTP over a raw socket
"""

__version__ = '0.1.0'
