"""
predictroom - terminal client for the Big/Small and Color Prediction rooms.

Polls the game server, rebuilds each room's round lifecycle locally and
renders it with rich.
"""

__version__ = "1.0.0"
