"""Charts for position projections and earnings."""

from .visualizer import Visualizer

__all__ = ['Visualizer']
