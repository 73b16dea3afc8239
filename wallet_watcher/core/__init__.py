"""
Core utilities — exceptions shared across listener, stores, loop and commands.
"""
