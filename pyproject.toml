[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "topk"
version = "0.1.0"
description = "HeavyKeeper top-k sketches, including a sliding-window variant, for finding heavy hitters in data streams."
requires-python = ">=3.10"
dependencies = []
keywords = ["top-k", "heavykeeper", "sketch", "heavy hitters", "streaming", "sliding window", "xxhash"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["topk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
