import io

import pytest

from pcmh264.encoder import H264Encoder, SampleFormat

START = b"\x00\x00\x00\x01"


def _encode(width, height, frames, fill=0x80):
    out = io.BytesIO()
    with H264Encoder(out, width, height, 25) as enc:
        for _ in range(frames):
            enc.encode_frame(bytes([fill]) * enc.frame_size)
    return out.getvalue()


def test_stream_starts_with_sps():
    out = io.BytesIO()
    H264Encoder(out, 32, 16, 25).close()
    data = out.getvalue()
    assert data[:4] == START
    assert data[4] == 0x67
    assert data[5] == 0x42
    assert data[6] == 0x00
    assert data[7] == 0x0A


def test_pps_follows_sps():
    out = io.BytesIO()
    H264Encoder(out, 32, 16).close()
    data = out.getvalue()
    second = data.index(START, 4)
    assert data[second + 4] == 0x68


def test_slice_nal_is_idr():
    data = _encode(32, 16, 1)
    positions = []
    start = 0
    while (pos := data.find(START, start)) != -1:
        positions.append(pos)
        start = pos + 4
    assert len(positions) == 3
    assert data[positions[2] + 4] == 0x65


@pytest.mark.parametrize("frames", [0, 1, 3])
def test_one_start_code_per_nal(frames):
    data = _encode(32, 32, frames)
    assert data.count(START) == 2 + frames


@pytest.mark.parametrize("width,height", [(16, 16), (128, 96), (48, 32)])
def test_frame_size_is_yuv420(width, height):
    enc = H264Encoder(io.BytesIO(), width, height)
    assert enc.frame_size == width * height + 2 * (width // 2) * (height // 2)


def test_frames_encoded_counts():
    enc = H264Encoder(io.BytesIO(), 16, 16)
    assert enc.frames_encoded == 0
    enc.encode_frame(bytes(enc.frame_size))
    enc.encode_frame(bytes(enc.frame_size))
    assert enc.frames_encoded == 2


def test_output_grows_by_at_least_a_frame():
    one = _encode(32, 32, 1)
    two = _encode(32, 32, 2)
    assert len(two) - len(one) >= 32 * 32 * 3 // 2


def test_pcm_samples_are_stored_unchanged():
    width, height = 32, 16
    enc_out = io.BytesIO()
    enc = H264Encoder(enc_out, width, height)
    luma = bytes((i % 200) + 16 for i in range(width * height))
    chroma = bytes([0x40]) * ((width // 2) * (height // 2) * 2)
    enc.encode_frame(luma + chroma)
    enc.close()
    first_block = b"".join(luma[y * width:y * width + 16] for y in range(16))
    second_block = b"".join(
        luma[y * width + 16:y * width + 32] for y in range(16)
    )
    data = enc_out.getvalue()
    assert first_block in data
    assert second_block in data
    assert data.index(first_block) < data.index(second_block)


def test_close_flushes_trailing_bytes():
    out = io.BytesIO()
    enc = H264Encoder(out, 16, 16)
    enc.encode_frame(bytes([0x10]) * enc.frame_size)
    before = len(out.getvalue())
    enc.close()
    data = out.getvalue()
    assert len(data) > before
    assert data[-1] == 0x80


def test_context_manager_closes():
    out = io.BytesIO()
    with H264Encoder(out, 16, 16) as enc:
        enc.encode_frame(bytes([0x10]) * enc.frame_size)
    explicit = io.BytesIO()
    enc2 = H264Encoder(explicit, 16, 16)
    enc2.encode_frame(bytes([0x10]) * enc2.frame_size)
    enc2.close()
    assert out.getvalue() == explicit.getvalue()


def test_idr_pic_id_changes_between_frames():
    out = io.BytesIO()
    with H264Encoder(out, 16, 16) as enc:
        frame = bytes([0x10]) * enc.frame_size
        enc.encode_frame(frame)
        enc.encode_frame(frame)
    data = out.getvalue()
    slices = data.split(START)[3:]
    assert len(slices) == 2
    assert slices[0] != slices[1]


@pytest.mark.parametrize("width,height", [(100, 96), (128, 90), (8, 16)])
def test_size_not_multiple_of_macroblock(width, height):
    out = io.BytesIO()
    with pytest.raises(ValueError):
        H264Encoder(out, width, height)
    assert out.getvalue() == b""


@pytest.mark.parametrize("width,height,fps", [(0, 16, 25), (16, 0, 25), (16, 16, 0)])
def test_non_positive_parameters_rejected(width, height, fps):
    with pytest.raises(ValueError):
        H264Encoder(io.BytesIO(), width, height, fps)


def test_unknown_sample_format_rejected():
    out = io.BytesIO()
    with pytest.raises(ValueError):
        H264Encoder(out, 16, 16, 25, "rgb24")
    assert out.getvalue() == b""


def test_explicit_sample_format_accepted():
    enc = H264Encoder(io.BytesIO(), 16, 16, 30, SampleFormat.YUV420P, 4, 3)
    assert enc.sample_format is SampleFormat.YUV420P


@pytest.mark.parametrize("delta", [-1, 1])
def test_wrong_frame_length_rejected(delta):
    enc = H264Encoder(io.BytesIO(), 16, 16)
    with pytest.raises(ValueError):
        enc.encode_frame(bytes(enc.frame_size + delta))
    assert enc.frames_encoded == 0


def test_sar_changes_sps():
    a = io.BytesIO()
    H264Encoder(a, 16, 16, 25, SampleFormat.YUV420P, 1, 1).close()
    b = io.BytesIO()
    H264Encoder(b, 16, 16, 25, SampleFormat.YUV420P, 16, 9).close()
    assert a.getvalue()[:8] == b.getvalue()[:8]
    assert a.getvalue() != b.getvalue()