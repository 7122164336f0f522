"""
Core types shared by every pipeline stage.
"""
