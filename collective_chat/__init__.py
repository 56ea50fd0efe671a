"""
Neighborhood Collective chat assistant service
"""

__version__ = "1.0.0"
