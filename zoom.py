import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image
import imageio

from brotkit import (
    ConfigurationError,
    FrameRenderer,
    IterationEngine,
    IterationPolicy,
    Palette,
    SequenceDriver,
    SpaceSpec,
    Strategy,
    count_frames,
    default_device,
    to_image,
)

from argparse import ArgumentParser


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render Mandelbrot frames and zoom sequences.')

    parser.add_argument('--strategy', type=str, choices=[s.value for s in Strategy],
                        dest='strategy', help='coloring strategy: flat bands, smooth gradient or dithered bands',
                        default=Strategy.CONTINUOUS.value)

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='resolution of samples along the x-axis',
                        metavar='X_RES', default=480)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='resolution of samples along the y-axis',
                        metavar='Y_RES', default=270)

    parser.add_argument('--x-center', type=float,
                        dest='x_center', help='real part of the point the frames are centered on',
                        metavar='X_CENTER', default=-1.0)

    parser.add_argument('--y-center', type=float,
                        dest='y_center', help='imaginary part of the point the frames are centered on',
                        metavar='Y_CENTER', default=0.0)

    parser.add_argument('--scale', type=float,
                        dest='scale', help='starting width of the sampled region along the real axis',
                        metavar='SCALE', default=4.0)

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='factor applied to the scale after each frame, in (0, 1)',
                        metavar='ZOOM_FACTOR', default=0.95)

    parser.add_argument('--final-scale', type=float, default=None,
                        help='render frames until the scale drops to this value. Without it a single frame is rendered.')

    parser.add_argument('--palette', type=str, dest='palette',
                        help='image whose first row of pixels is used as the palette. Overrides --colormap.')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='matplotlib colormap sampled for the palette (e.g. "viridis", "inferno")',
                        metavar='COLORMAP', default='twilight_shifted')

    parser.add_argument('--palette-size', type=int, dest='palette_size', default=16,
                        help='number of colors sampled from --colormap')

    parser.add_argument('--skew', type=float, default=1.0,
                        help='histogram skew in [0, 1]; 1 spreads escape speeds evenly over the palette')

    parser.add_argument('--dither-ratio', type=float, dest='dither_ratio', default=0.2,
                        help='fraction of each band, in [0, 1], dithered into its neighbours')

    parser.add_argument('--initial-iterations', type=int, dest='initial_iterations', default=200,
                        help='iteration cap of the first frame')

    parser.add_argument('--growth-factor', type=int, dest='growth_factor', default=200,
                        help='the next iteration cap is the previous minimum escape count times this factor')

    parser.add_argument('--rows-per-chunk', type=int, dest='rows_per_chunk', default=None,
                        help='split each frame into bands of this many rows')

    parser.add_argument('--workers', type=int, default=1,
                        help='number of row bands computed concurrently')

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: gif, image, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store numbered frames.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"gif", "image", "frames"}
    modes: list[str] = []
    for mode in opt.modes or ["image"]:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in modes:
            modes.append(mode)

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    frame_dir_path: Path | None = None
    if "frames" in modes:
        frame_dir_path = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    file_modes = [mode for mode in modes if mode in {"gif", "image"}]
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        mode = file_modes[0]
        expected_suffix = ".gif" if mode == "gif" else f".{image_format}"
        if opt.output:
            output_path = Path(opt.output).expanduser()
            if output_path.exists() and output_path.is_dir():
                parser.error("--output must point to a file, not a directory, when a single file mode is active.")
            if output_path.suffix:
                if output_path.suffix.lower() != expected_suffix:
                    parser.error(f"--output extension {output_path.suffix} does not match {expected_suffix}.")
            else:
                output_path = output_path.with_suffix(expected_suffix)
        else:
            output_path = Path("movie.gif" if mode == "gif" else f"frame_final{expected_suffix}")
        if mode == "gif":
            gif_path = output_path.expanduser().resolve()
        else:
            image_path = output_path.expanduser().resolve()
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "movie.gif").resolve()
        image_path = (base_dir / f"frame_final.{image_format}").resolve()

    return OutputConfig(
        modes=tuple(modes),
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))


def write_frame_sequence(image: PIL.Image.Image, frame_dir: Path, index: int, digits: int, image_format: str) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"frame{index:0{digits}d}.{image_format}"
    frame_dir.mkdir(parents=True, exist_ok=True)
    image.save(str(frame_path), format=_pil_format_name(image_format))
    return frame_path


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array)


def load_palette(opt) -> Palette:
    if opt.palette:
        return Palette.from_image(opt.palette)
    return Palette.from_colormap(opt.colormap, opt.palette_size)


def build_renderer(opt, device: str) -> FrameRenderer:
    policy = IterationPolicy(
        initial_iterations=opt.initial_iterations,
        growth_factor=opt.growth_factor,
    )
    engine = IterationEngine(policy, rows_per_chunk=opt.rows_per_chunk, workers=opt.workers, device=device)
    return FrameRenderer(
        load_palette(opt),
        opt.strategy,
        skew=opt.skew,
        dither_ratio=opt.dither_ratio,
        engine=engine,
    )


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    output_config = resolve_output_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)
    device = default_device()
    log("Rendering on %s" % device)

    try:
        space = SpaceSpec(complex(opt.x_center, opt.y_center), opt.scale, opt.x_res, opt.y_res)
        renderer = build_renderer(opt, device)
        if opt.final_scale is None:
            frames = 1
            # a terminal scale just below the start yields exactly one frame
            driver = SequenceDriver(space, 0.5, space.scale * 0.5, renderer)
        else:
            frames = count_frames(space.scale, opt.zoom_factor, opt.final_scale)
            if frames == 0:
                parser.error(f"--final-scale {opt.final_scale} must be smaller than --scale {opt.scale}.")
            driver = SequenceDriver(space, opt.zoom_factor, opt.final_scale, renderer)
    except ConfigurationError as exc:
        parser.error(str(exc))

    gif_writer = None
    if output_config.gif_path is not None:
        output_config.gif_path.parent.mkdir(parents=True, exist_ok=True)
        gif_writer = imageio.get_writer(str(output_config.gif_path), mode='I', duration=0.1, loop=0)

    frame_digits = max(3, len(str(max(frames - 1, 0))))
    final_image: PIL.Image.Image | None = None

    try:
        for i, frame in enumerate(driver):
            print("frame {0} out of {1}".format(i, frames), end='\r')
            log("\n" + frame.summary())

            if gif_writer is not None:
                write_gif(gif_writer, frame.pixels)
            if output_config.frame_dir is not None:
                write_frame_sequence(
                    to_image(frame.pixels),
                    output_config.frame_dir,
                    i,
                    frame_digits,
                    output_config.image_format,
                )
            final_image = to_image(frame.pixels)
    finally:
        if gif_writer is not None:
            gif_writer.close()

    print()
    if output_config.image_path is not None and final_image is not None:
        write_single_image(final_image, output_config.image_path, output_config.image_format)


if __name__ == '__main__':
    main()
