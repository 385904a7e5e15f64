[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "streamdvr"
version = "2.0.2"
description = "Record live HLS streams of chosen channels automatically, with a small web UI to manage them."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["dvr", "hls", "m3u8", "recorder", "live stream", "video capture"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Capture",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
streamdvr = "streamdvr.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["streamdvr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
