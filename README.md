# pcmh264

A tiny H.264 writer for learning how the format is put together. It reads raw
YUV420p frames and writes an Annex B H.264 stream (baseline profile,
`level_idc` 0x0A) in which every macroblock is coded as `I_PCM`, that is, the
pixels are stored as they are. This is not a compressor: the output is larger
than the input.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
pcmh264 input.yuv output.h264 [width] [height] [fps] [SARw] [SARh]
```

Defaults: width 128, height 96, 25 fps, sample aspect ratio 1:1.

- Width and height must be positive multiples of 16, and fps must be
  positive; otherwise an error is printed and the command fails.
- Each optional number is read from the leading digits of its argument. If
  none can be read, it becomes 0 and an "Error reading ..." message is
  printed.
- Each frame read from the input must be `width * height * 3 / 2` bytes
  (the Y plane followed by the Cb and Cr planes at half width and half
  height). A trailing partial frame is ignored.
- A line `Saved frame num: N` is printed for each frame written, counting
  from 0.
- The exit status is 0 on success and 1 when too few arguments are given,
  a file cannot be opened, or encoding fails.

The same command can be run from Python with `pcmh264.cli.main(argv)`, which
returns the exit status; with no arguments it reads `sys.argv`.

## Library

```python
from pcmh264.encoder import H264Encoder, SampleFormat

width, height = 32, 16
frame = bytes(width * height * 3 // 2)

with open("out.h264", "wb") as out:
    with H264Encoder(out, width, height, 25, SampleFormat.YUV420P, 1, 1) as encoder:
        encoder.encode_frame(frame)
        print(encoder.frame_size, encoder.frames_encoded)
```

`H264Encoder` writes the SPS (with VUI timing and sample aspect ratio) and
the PPS as soon as it is created. `encode_frame` writes one IDR slice per
frame and raises `ValueError` if the data is not exactly `frame_size` bytes.
`close()`, also called on leaving the `with` block, writes out any bits still
buffered. Invalid sizes, frame rates or sample formats raise `ValueError`.

The lower-level `pcmh264.bitstream.BitstreamWriter` writes to any binary file
object:

- `add_bits(value, num_bits)` for fields of 1 to 64 bits,
- `add_byte(value)`,
- `add_exp_golomb_unsigned(value)` and `add_exp_golomb_signed(value)`,
- `add_start_code(value, align)` for four raw bytes with no emulation
  prevention,
- `byte_align()` and `close()`; it is also a context manager.

Emulation prevention bytes (`0x03`) are inserted where a `00 00` pair is
followed by a byte of `0x00` to `0x03`. Misuse raises
`pcmh264.bitstream.BitstreamError`.

## What it does not do

- No compression: there is no prediction, transform or entropy coding, only
  `I_PCM` macroblocks.
- Only the `yuv420p` sample format is accepted, and only frame sizes that
  are multiples of 16 (no cropping).
- It only writes streams; it cannot read or decode H.264.