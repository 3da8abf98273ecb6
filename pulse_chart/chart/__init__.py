"""
Chart rendering and interaction: panes, synchronization, drawing tools,
compare overlay, snapshot export and the per-view session.
"""
