# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Image-layer exceptions for clean abstraction from library-specific errors.

These exceptions keep Pillow's exception types (``UnidentifiedImageError``,
``DecompressionBombError``, bare ``OSError``) from leaking into the CLI layer.
The offending path is logged immediately before raising; the attribute is for
callers that want to report it in their own words.
"""


class ImageSourceError(Exception):
    """Base exception for image loading errors.

    Attributes:
        source_path: Path of the image that caused the error
    """

    def __init__(self, message: str, source_path: str | None = None):
        super().__init__(message)
        self.source_path = source_path


class ImageNotFoundError(ImageSourceError):
    """Image file does not exist or is not a regular file."""


class ImageDecodeError(ImageSourceError):
    """Image exists but could not be read or decoded.

    Raised for:
    - Unrecognized or unsupported raster format
    - Truncated or corrupt data
    - Permission errors while reading
    - Images Pillow refuses as decompression bombs
    """
