"""PSF recording and kernel preparation."""

from .psf import PSF, crop_kernel, geometric_psf, psf_to_image_kernel, record_psf

__all__ = ["PSF", "crop_kernel", "geometric_psf", "psf_to_image_kernel", "record_psf"]
