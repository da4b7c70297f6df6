# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, ImageCms, UnidentifiedImageError
from PIL.ImageCms import Intent

from ..config import Config
from .exceptions import ImageDecodeError, ImageNotFoundError


RESAMPLE_METHODS = {
    "lanczos": Image.Resampling.LANCZOS,
    "bicubic": Image.Resampling.BICUBIC,
    "hamming": Image.Resampling.HAMMING,
    "bilinear": Image.Resampling.BILINEAR,
    "box": Image.Resampling.BOX,  # area-average; good for big downscales
    "nearest": Image.Resampling.NEAREST,  # use for pixel art
}

# Modes littlecms can read directly; anything else is widened to RGBA first
CMS_INPUT_MODES = ("RGB", "RGBA", "L", "CMYK", "LAB")


def load_image(path: str | Path) -> Image.Image:
    """Open and fully decode an image file.

    Raises:
        ImageNotFoundError: The file does not exist.
        ImageDecodeError: The file cannot be read or is not a supported raster.
    """
    logger = logging.getLogger("images")
    path_obj = Path(path)

    if not path_obj.is_file():
        logger.error(f"image not found: {path}")
        raise ImageNotFoundError(f"No such image file: {path}", source_path=str(path))

    try:
        img = Image.open(path_obj)
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.error(f"cannot decode {path}: {e}")
        raise ImageDecodeError(f"Can't open file: {e}", source_path=str(path)) from e

    logger.debug(f"loaded {path} format={img.format} mode={img.mode} size={img.width}x{img.height}")
    return img


def convert_to_srgb(img: Image.Image) -> Image.Image:
    """Convert image from embedded ICC profile to sRGB if needed."""
    if not Config().get("image.color_correction"):
        return img

    icc_profile = img.info.get("icc_profile")
    if not icc_profile:
        return img

    try:
        source_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc_profile))
        profile_name = ImageCms.getProfileName(source_profile).strip()
        if "srgb" in profile_name.lower():
            return img

        logging.getLogger("images").info(f"Converting {profile_name} -> sRGB")

        # The input mode must match the profile colour space; the output is always RGB(A)
        if img.mode not in CMS_INPUT_MODES:
            img = img.convert("RGBA")
        out_mode = "RGBA" if img.mode == "RGBA" else "RGB"

        srgb_profile = ImageCms.createProfile("sRGB")
        transform = ImageCms.buildTransformFromOpenProfiles(
            source_profile, srgb_profile, img.mode, out_mode, renderingIntent=Intent.RELATIVE_COLORIMETRIC
        )
        converted_img = ImageCms.applyTransform(img, transform)
        assert converted_img is not None, "ImageCms.applyTransform must return an image"

        converted_img.info = {k: v for k, v in img.info.items() if k != "icc_profile"}
        return converted_img

    except (ImageCms.PyCMSError, OSError, ValueError) as e:
        logging.getLogger("images").warning(f"Color conversion failed: {e}")
        return img


def fit_height(src_size: tuple[int, int], width: int) -> int:
    """Height that keeps the source aspect ratio at the given width."""
    src_w, src_h = src_size
    if src_w <= 0:
        return 1
    return max(1, int(width / src_w * src_h))


def fit_size(src_size: tuple[int, int], width: int, height: int) -> tuple[int, int]:
    """Largest size with the source aspect ratio that fits inside width x height."""
    src_w, src_h = src_size
    if src_w <= 0 or src_h <= 0:
        return (0, 0)
    scale = min(width / src_w, height / src_h)
    return (max(1, int(round(src_w * scale))), max(1, int(round(src_h * scale))))


def resize_to_rgba(img: Image.Image, width: int, height: int | None = None, method: str = "lanczos") -> np.ndarray:
    """Resize an image to fit within width x height and return an RGBA grid.

    When height is None it is derived from width and the source aspect ratio.
    The resulting dimensions can differ slightly from the requested ones.

    Returns:
        uint8 array of shape (rows, columns, 4)
    """
    method_s = str(method).lower()
    if method_s not in RESAMPLE_METHODS:
        raise ValueError(f"Unknown resample method: {method} (choose from {', '.join(RESAMPLE_METHODS)})")

    img = convert_to_srgb(img)
    if img.mode != "RGBA":
        img = img.convert("RGBA")

    if height is None:
        height = fit_height(img.size, width)
    size = fit_size(img.size, width, height)
    if size == (0, 0):
        return np.zeros((0, 0, 4), dtype=np.uint8)

    if size != img.size:
        img = img.resize(size, resample=RESAMPLE_METHODS[method_s])

    logging.getLogger("images").debug(f"resized to {size[0]}x{size[1]} using {method_s}")
    return np.asarray(img, dtype=np.uint8)
