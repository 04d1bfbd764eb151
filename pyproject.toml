[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sensevid"
version = "0.1.0"
description = "Low-complexity video encoder and trace generator for simulating video over wireless sensor networks"
requires-python = ">=3.10"
keywords = ["video", "sensor networks", "dct", "bindct", "entropy coding", "simulation", "psnr", "ssim"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: System :: Networking",
]
dependencies = [
    "numpy",
    "pillow",
    "imageio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sensevid = "sensevid.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sensevid"]

[tool.pytest.ini_options]
addopts = "-ra"
