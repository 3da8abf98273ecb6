"""
Chart window and its widgets
"""
