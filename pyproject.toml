[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "npyfile"
version = "0.1.0"
description = "Read and write NumPy .npy and .npz files with a small, explicit API"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["npy", "npz", "numpy", "array", "file format", "zip"]
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
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
npyfile-demo = "npyfile.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["npyfile"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
