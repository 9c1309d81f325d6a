# janus/__init__.py

"""
Janus - one-way directory mirroring
"""
__version__ = "1.0.0"
