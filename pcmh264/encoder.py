"""Minimal H.264 encoder that stores every macroblock as uncompressed I_PCM."""

from __future__ import annotations

from enum import Enum
from types import TracebackType
from typing import BinaryIO, Iterator, Optional, Tuple

from .bitstream import BitstreamWriter

MACROBLOCK_WIDTH = 16
MACROBLOCK_HEIGHT = 16
TIME_SCALE_HZ = 27_000_000
START_CODE = 0x000001

_MB_TYPE_I_PCM = 25
_SLICE_TYPE_I = 7


class SampleFormat(Enum):
    """Raw input sample layouts accepted by the encoder."""

    YUV420P = "yuv420p"


class H264Encoder:
    """Encodes raw planar YUV 4:2:0 frames into an H.264 Annex B stream.

    The SPS and PPS are written as soon as the encoder is created. Each
    frame becomes one IDR slice made only of I_PCM macroblocks, so the
    output is a valid stream but carries no compression.
    """

    def __init__(
        self,
        out: BinaryIO,
        width: int,
        height: int,
        fps: int = 25,
        sample_format: SampleFormat = SampleFormat.YUV420P,
        sar_width: int = 1,
        sar_height: int = 1,
    ) -> None:
        if sample_format is not SampleFormat.YUV420P:
            raise ValueError(
                "sample format not allowed; only yuv420p is supported"
            )
        if width <= 0 or height <= 0:
            raise ValueError("image width and height must be positive")
        if width % MACROBLOCK_WIDTH or height % MACROBLOCK_HEIGHT:
            raise ValueError(
                "size not allowed; only multiples of the 16x16 macroblock "
                "size are supported"
            )
        if fps <= 0:
            raise ValueError("fps must be positive")

        self.width = width
        self.height = height
        self.fps = fps
        self.sample_format = sample_format
        self._chroma_width = width // 2
        self._chroma_height = height // 2
        self._frames_encoded = 0
        self._writer = BitstreamWriter(out)

        self._write_sps(sar_width, sar_height)
        self._write_pps()

    @property
    def frame_size(self) -> int:
        """Number of bytes one raw input frame occupies."""
        luma = self.width * self.height
        chroma = self._chroma_width * self._chroma_height
        return luma + 2 * chroma

    @property
    def frames_encoded(self) -> int:
        """Number of frames written so far."""
        return self._frames_encoded

    def _write_nal_header(self, nal_unit_type: int) -> None:
        w = self._writer
        w.add_start_code(START_CODE)
        w.add_bits(0, 1)  # forbidden_zero_bit
        w.add_bits(3, 2)  # nal_ref_idc
        w.add_bits(nal_unit_type, 5)

    def _write_sps(self, sar_width: int, sar_height: int) -> None:
        w = self._writer
        self._write_nal_header(7)
        w.add_bits(0x42, 8)  # profile_idc: baseline
        for _ in range(6):
            w.add_bits(0, 1)  # constraint_set0..5_flag
        w.add_bits(0, 2)  # reserved_zero_2bits
        w.add_bits(0x0A, 8)  # level_idc
        w.add_exp_golomb_unsigned(0)  # seq_parameter_set_id
        w.add_exp_golomb_unsigned(0)  # log2_max_frame_num_minus4
        w.add_exp_golomb_unsigned(0)  # pic_order_cnt_type
        w.add_exp_golomb_unsigned(0)  # log2_max_pic_order_cnt_lsb_minus4
        w.add_exp_golomb_unsigned(0)  # max_num_ref_frames
        w.add_bits(0, 1)  # gaps_in_frame_num_value_allowed_flag

        w.add_exp_golomb_unsigned(self.width // MACROBLOCK_WIDTH - 1)
        w.add_exp_golomb_unsigned(self.height // MACROBLOCK_HEIGHT - 1)

        w.add_bits(1, 1)  # frame_mbs_only_flag
        w.add_bits(0, 1)  # direct_8x8_inference_flag
        w.add_bits(0, 1)  # frame_cropping_flag
        w.add_bits(1, 1)  # vui_parameters_present_flag

        w.add_bits(1, 1)  # aspect_ratio_info_present_flag
        w.add_bits(0xFF, 8)  # aspect_ratio_idc: Extended_SAR
        w.add_bits(sar_width, 16)
        w.add_bits(sar_height, 16)

        w.add_bits(0, 1)  # overscan_info_present_flag
        w.add_bits(0, 1)  # video_signal_type_present_flag
        w.add_bits(0, 1)  # chroma_loc_info_present_flag
        w.add_bits(1, 1)  # timing_info_present_flag
        w.add_bits(TIME_SCALE_HZ // (2 * self.fps), 32)  # num_units_in_tick
        w.add_bits(TIME_SCALE_HZ, 32)  # time_scale
        w.add_bits(1, 1)  # fixed_frame_rate_flag

        w.add_bits(0, 1)  # nal_hrd_parameters_present_flag
        w.add_bits(0, 1)  # vcl_hrd_parameters_present_flag
        w.add_bits(0, 1)  # pic_struct_present_flag
        w.add_bits(0, 1)  # bitstream_restriction_flag

        w.add_bits(1, 1)  # rbsp_stop_one_bit
        w.byte_align()

    def _write_pps(self) -> None:
        w = self._writer
        self._write_nal_header(8)
        w.add_exp_golomb_unsigned(0)  # pic_parameter_set_id
        w.add_exp_golomb_unsigned(0)  # seq_parameter_set_id
        w.add_bits(0, 1)  # entropy_coding_mode_flag
        w.add_bits(0, 1)  # bottom_field_pic_order_in_frame_present_flag
        w.add_exp_golomb_unsigned(0)  # num_slice_groups_minus1
        w.add_exp_golomb_unsigned(0)  # num_ref_idx_l0_default_active_minus1
        w.add_exp_golomb_unsigned(0)  # num_ref_idx_l1_default_active_minus1
        w.add_bits(0, 1)  # weighted_pred_flag
        w.add_bits(0, 2)  # weighted_bipred_idc
        w.add_exp_golomb_signed(0)  # pic_init_qp_minus26
        w.add_exp_golomb_signed(0)  # pic_init_qs_minus26
        w.add_exp_golomb_signed(0)  # chroma_qp_index_offset
        w.add_bits(0, 1)  # deblocking_filter_control_present_flag
        w.add_bits(0, 1)  # constrained_intra_pred_flag
        w.add_bits(0, 1)  # redundant_pic_cnt_present_flag
        w.add_bits(1, 1)  # rbsp_stop_one_bit
        w.byte_align()

    def _write_slice_header(self, frame_number: int) -> None:
        w = self._writer
        self._write_nal_header(5)
        w.add_exp_golomb_unsigned(0)  # first_mb_in_slice
        w.add_exp_golomb_unsigned(_SLICE_TYPE_I)
        w.add_exp_golomb_unsigned(0)  # pic_parameter_set_id
        w.add_bits(0, 4)  # frame_num is always 0 for IDR pictures
        w.add_exp_golomb_unsigned(frame_number % 512)  # idr_pic_id
        w.add_bits(0, 4)  # pic_order_cnt_lsb
        w.add_bits(0, 1)  # no_output_of_prior_pics_flag
        w.add_bits(0, 1)  # long_term_reference_flag
        w.add_exp_golomb_signed(0)  # slice_qp_delta

    def _planes(self) -> Iterator[Tuple[int, int, int, int]]:
        """Yield (offset, plane width, block width, block height) per plane."""
        luma = self.width * self.height
        chroma = self._chroma_width * self._chroma_height
        yield 0, self.width, MACROBLOCK_WIDTH, MACROBLOCK_HEIGHT
        for offset in (luma, luma + chroma):
            yield (
                offset,
                self._chroma_width,
                MACROBLOCK_WIDTH // 2,
                MACROBLOCK_HEIGHT // 2,
            )

    def _write_macroblock(self, data: memoryview, row: int, col: int) -> None:
        w = self._writer
        w.add_exp_golomb_unsigned(_MB_TYPE_I_PCM)  # mb_type
        w.byte_align()
        for offset, plane_width, block_w, block_h in self._planes():
            for y in range(row * block_h, (row + 1) * block_h):
                start = offset + y * plane_width + col * block_w
                for sample in data[start:start + block_w]:
                    w.add_byte(sample)

    def encode_frame(self, data: bytes) -> None:
        """Encode one raw frame of exactly ``frame_size`` bytes."""
        view = memoryview(data).cast("B")
        if len(view) != self.frame_size:
            raise ValueError(
                f"frame must be {self.frame_size} bytes, got {len(view)}"
            )
        self._write_slice_header(self._frames_encoded)
        for row in range(self.height // MACROBLOCK_HEIGHT):
            for col in range(self.width // MACROBLOCK_WIDTH):
                self._write_macroblock(view, row, col)
        self._writer.add_bits(1, 1)  # rbsp_stop_one_bit
        self._writer.byte_align()
        self._frames_encoded += 1

    def close(self) -> None:
        """Write out all bits still held in the bitstream buffer."""
        self._writer.close()

    def __enter__(self) -> "H264Encoder":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()