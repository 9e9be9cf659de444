"""
WAV - music card collecting, trading and mini-game economy service.
"""
__version__ = "1.0.0"
