"""Rendering-side pieces: style values, the renderer interface, clusters."""
