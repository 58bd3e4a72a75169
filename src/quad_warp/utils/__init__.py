"""File helpers."""

from .image_io import load_image, save_image, save_snapshot  # noqa: F401
