"""
draftkeeper - never lose an unsent message draft
"""

__version__ = "0.1.0"
__logo__ = "📝"
