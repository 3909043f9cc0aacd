from .surface import COLORS, DrawingSurface

__all__ = ["COLORS", "DrawingSurface"]
