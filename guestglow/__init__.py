"""
GuestGlow - hotel guest feedback and reputation management backend
"""

__version__ = "1.0.0"
