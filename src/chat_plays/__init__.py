"""
Chat Plays: let a chat crowd drive a program by voting on commands.
"""

__version__ = "1.0.0"
