"""
Quota Engine - resource-quota analytics and task priority scoring.
"""

__version__ = "1.0.0"
