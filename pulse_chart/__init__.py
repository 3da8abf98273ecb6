"""
PulseChart - interactive price-chart workstation
"""

__version__ = "0.1.0"
