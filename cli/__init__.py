"""
hostinfo command-line interface.
"""
