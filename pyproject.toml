[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vstreamer"
version = "0.1.0"
description = "MJPEG video streaming server with device discovery, recording and outer stream control"
requires-python = ">=3.10"
dependencies = []
keywords = ["mjpeg", "video", "streaming", "camera", "http", "json"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vstreamer"]

[tool.pytest.ini_options]
addopts = "-ra"
