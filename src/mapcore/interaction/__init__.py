"""User interaction: mode state machine, overlays, box select, heatmap.

The top-level coordinator is ``mapcore.interaction.controller.MapController``.
"""
