"""Interactive 3D atlas of Himalayan mountaineering expeditions."""

__version__ = "0.1.0"
