"""Grid-based game AI: cell grids, pathfinding, perception, occupancy maps and spatial reasoning."""

__version__ = "0.1.0"