[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dictation"
version = "0.1.0"
description = "Building blocks of a voice dictation daemon: audio chunking, transcript merging, model specs, configuration, debug recordings, health flags and a control socket."
requires-python = ">=3.11"
dependencies = []
keywords = ["dictation", "speech-to-text", "transcription", "voice", "audio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["dictation"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
