"""
API utility helpers.
"""
