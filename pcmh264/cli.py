"""Command line front end: raw yuv420p file in, H.264 stream out."""

from __future__ import annotations

import re
import sys
from typing import List, Optional, Sequence

from .bitstream import BitstreamError
from .encoder import H264Encoder, SampleFormat

_BANNER = (
    "Simple h264 coder",
    "This is NOT a video compressor, only uses I_PCM macroblocks "
    "(intra without compression)",
    "It is made only for learning purposes",
    "**********************************************************",
)

_USAGE = (
    "------------------------------------------------------------------------",
    "Usage: pcmh264 input.yuv output.h264 [image width] [image height] [fps] "
    "[AR SARw] [AR SARh]",
    "Default parameters: Image width=128 Image height=96 Fps=25 SARw=1 SARh=1",
    "Assumptions: Input file is yuv420p",
    "------------------------------------------------------------------------",
)

_OPTIONAL = (
    ("width", 128, "image width"),
    ("height", 96, "image height"),
    ("fps", 25, "fps"),
    ("sar_width", 1, "AR SARw"),
    ("sar_height", 1, "AR SARh"),
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_int(text: str) -> int:
    """Read a leading integer from ``text``; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Encode a raw yuv420p file to H.264; return the exit status."""
    args: List[str] = list(sys.argv[1:] if argv is None else argv)

    for line in _BANNER:
        print(line)

    if len(args) < 2:
        for line in _USAGE:
            print(line)
        return 1

    input_path, output_path = args[0], args[1]
    settings = {}
    for position, (name, default, label) in enumerate(_OPTIONAL, start=2):
        value = default
        if len(args) > position:
            value = _parse_int(args[position])
            if value == 0:
                print(f"Error reading {label} input parameter")
        settings[name] = value

    try:
        source = open(input_path, "rb")
    except OSError:
        print("Error opening source file")
        return 1

    with source:
        try:
            destination = open(output_path, "wb")
        except OSError:
            print("Error opening destination file")
            return 1

        with destination:
            try:
                encoder = H264Encoder(
                    destination,
                    settings["width"],
                    settings["height"],
                    settings["fps"],
                    SampleFormat.YUV420P,
                    settings["sar_width"],
                    settings["sar_height"],
                )
                while True:
                    frame = source.read(encoder.frame_size)
                    if len(frame) != encoder.frame_size:
                        break
                    encoder.encode_frame(frame)
                    print(f"Saved frame num: {encoder.frames_encoded - 1}")
                encoder.close()
            except (BitstreamError, ValueError) as err:
                print(f"Error: {err}")
                return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())