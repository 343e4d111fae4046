"""
srarq - Selective Repeat ARQ protocol with a discrete-event network emulator.
"""

__version__ = "1.0.0"
