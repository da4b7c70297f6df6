# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import argparse
import logging
import sys

from . import __version__
from .config import Config
from .dispatch import DispatchScheduler, build
from .media import ImageSourceError, RESAMPLE_METHODS, count_visible, load_image, resize_to_rgba, sample
from .options import RunOptions
from .output import ProbeTransportFactory, TransportError
from .utils.metrics import ProbeTracker


def setup_logging(config, override_level=None):
    """Configure logging based on config settings."""
    log_level_str = override_level.lower() if override_level else str(config.get("log.level")).lower()

    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "warn": logging.WARNING,  # alias
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    logging.basicConfig(
        level=level_map.get(log_level_str, logging.INFO),
        format="[%(levelname)s] [%(name)s] %(message)s",
        handlers=[logging.StreamHandler()],
        force=True,  # Reset any existing configuration
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingas",
        description="Draw an image on an IPv6 ping canvas by probing pixel-encoded addresses.",
    )
    parser.add_argument("image", help="A path to an image. Most bitmap formats are supported.")
    parser.add_argument("x", type=int, help="The x coordinate to draw at (range [0..1920]).")
    parser.add_argument("y", type=int, help="The y coordinate to draw at (range [0..1080]).")
    parser.add_argument("width", type=int, help="The width of the scaled bitmap.")
    parser.add_argument(
        "height",
        type=int,
        nargs="?",
        default=None,
        help="The height of the scaled bitmap. If set, the bitmap is resized to fit within width and height.",
    )
    parser.add_argument(
        "-r", "--rate", type=float, default=None, help="Delay in milliseconds between passes over every pixel."
    )
    parser.add_argument(
        "-n", "--repeat", type=int, default=None, help="Stop after this many passes (default: run until interrupted)."
    )
    parser.add_argument(
        "-f", "--filter", default=None, choices=sorted(RESAMPLE_METHODS), type=str.lower, help="Resampling filter."
    )
    parser.add_argument(
        "-g", "--granularity", default=None, choices=["row", "pixel"], help="One worker per row or per pixel."
    )
    parser.add_argument("--stagger", type=float, default=None, help="Start delay in milliseconds per stagger slot.")
    parser.add_argument(
        "--failure-pause", type=float, default=None, help="Pause in milliseconds after a failed probe."
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-probe send timeout in milliseconds.")
    parser.add_argument(
        "--transport", default=None, help="Probe transport: icmpv6, or null for a dry run."
    )
    parser.add_argument("--config", default=None, help="Path to YAML/TOML/JSON config file")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "warn", "error", "critical"],
        type=str.lower,
        help="Set logging level (overrides config file)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Draw an image until interrupted or until the repeat budget runs out.

    Returns the process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config()
    config.load(args.config)

    setup_logging(config, override_level=args.log_level)
    logger = logging.getLogger("main")
    logger.debug(f"loaded config: {config.get()}")

    params = {k: v for k, v in vars(args).items() if k not in ("config", "log_level")}
    try:
        options = RunOptions.from_params(params, config)
    except ValueError as e:
        parser.error(str(e))
    options.log_info()

    try:
        img = load_image(options.image)
    except ImageSourceError as e:
        logger.error(str(e))
        return 1

    grid = resize_to_rgba(img, options.width, options.height, options.filter)
    image_height, image_width = grid.shape[:2]

    canvas_w, canvas_h = config.get("canvas.width"), config.get("canvas.height")
    if options.x + image_width > canvas_w or options.y + image_height > canvas_h:
        logger.warning(
            f"image at ({options.x}, {options.y}) @ {image_width}x{image_height} extends past the "
            f"{canvas_w}x{canvas_h} canvas; those pixels will not be shown"
        )

    rows = sample(grid, options.x, options.y)
    units = build(rows, options.granularity)
    logger.info(
        f"{count_visible(grid)} visible pixels of {image_width * image_height} in {len(units)} work units"
    )
    if not units:
        logger.warning("image is fully transparent, nothing to draw")
        return 0

    try:
        transport = ProbeTransportFactory.create(
            options.transport,
            timeout_s=options.timeout_s,
            payload=config.get("net.payload"),
            sndbuf=config.get("net.sndbuf"),
        )
        transport.open()
    except TransportError as e:
        logger.error(str(e))
        return 1

    print(
        f"Printing '{options.image}' to ({options.x}, {options.y}) @ {image_width}x{image_height} "
        f"every {options.rate:g} ms"
    )
    print(
        "\nErrors will be printed below, this can happen when the queues are congested. "
        "Try a longer -r delay if this keeps happening.",
        file=sys.stderr,
    )

    tracker = ProbeTracker(log_interval_s=config.get("log.rate_ms") / 1000.0)
    scheduler = DispatchScheduler(units, transport, options.dispatch_options(config), tracker)
    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        transport.close()

    return 0


def run():
    """Entry point for setuptools console scripts."""
    sys.exit(main())


if __name__ == "__main__":
    run()
