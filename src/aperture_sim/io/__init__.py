"""File I/O for images, masks and PSF stacks."""

from .tiff import load_mask_bitmap, read_rgba, read_tiff, write_rgba, write_tiff

__all__ = ["load_mask_bitmap", "read_rgba", "read_tiff", "write_rgba", "write_tiff"]
