# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Image loading, resampling and pixel sampling."""

from .exceptions import ImageDecodeError, ImageNotFoundError, ImageSourceError
from .images import RESAMPLE_METHODS, fit_height, load_image, resize_to_rgba
from .sampler import SampledPixel, SampledRow, count_visible, iter_pixels, sample


__all__ = [
    "RESAMPLE_METHODS",
    "ImageDecodeError",
    "ImageNotFoundError",
    "ImageSourceError",
    "SampledPixel",
    "SampledRow",
    "count_visible",
    "fit_height",
    "iter_pixels",
    "load_image",
    "resize_to_rgba",
    "sample",
]
