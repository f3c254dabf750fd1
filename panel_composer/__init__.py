"""
Grid-based composition of rendered figure panels.
"""
