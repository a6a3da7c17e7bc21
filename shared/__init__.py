"""CanopyLab shared code."""
