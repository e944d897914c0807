"""
Subcommand handlers.
"""
