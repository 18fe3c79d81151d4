[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pcmh264"
version = "1.0.0"
description = "Minimal H.264 Annex B writer that stores YUV420p frames as uncompressed I_PCM macroblocks"
requires-python = ">=3.10"
dependencies = []
keywords = ["h264", "avc", "video", "encoder", "yuv420p", "i_pcm", "exp-golomb", "bitstream"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pcmh264 = "pcmh264.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pcmh264"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
