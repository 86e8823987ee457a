"""Trajectory export."""

from zetaspiral.io.exporter import TrajectoryExporter, TrajectoryMetadata

__all__ = ["TrajectoryExporter", "TrajectoryMetadata"]
