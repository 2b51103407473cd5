from .image_writers import write_image, write_npy, write_png16, write_ppm16, write_tiff16

__all__ = [
    "write_image",
    "write_npy",
    "write_png16",
    "write_ppm16",
    "write_tiff16",
]
