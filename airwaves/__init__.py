"""
Airwaves - AI radio transitions for a personal music player.

Between tracks the station may insert a synthesized DJ announcement
(one or two hosts) and then bring the next song back up smoothly.
"""

__version__ = "1.0.0"
