from .base_styles import BaseStyles
from .chart_styles import ChartStyles

__all__ = ['BaseStyles', 'ChartStyles']
