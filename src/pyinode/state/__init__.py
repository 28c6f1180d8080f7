"""State/register layer.

This package is the single source of truth for how decoded advertising data
turns into a device's register image: change detection, per-family layouts
and rendering.
"""
