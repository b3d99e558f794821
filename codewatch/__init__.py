"""
codewatch
Keeps a remote code index in sync with a working directory
"""
__version__ = "0.1.0"
