"""Minimal H.264 stream writer using uncompressed I_PCM macroblocks.

Submodules: ``bitstream`` (bit and Exp-Golomb writer), ``encoder``
(YUV420p frame encoder) and ``cli`` (the ``pcmh264`` command).
"""

__version__ = "1.0.0"
__all__ = ["bitstream", "encoder", "cli"]