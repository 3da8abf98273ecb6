"""
Data layer: models, timeframe catalogs, the REST feed client, background
fetch coordination and preference storage.
"""
