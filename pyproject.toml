[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "splitcone"
version = "3.2.2"
description = "Building blocks for a splitting conic solver: problem types, sparse KKT assembly, and direct and indirect linear system solvers"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["optimization", "conic", "sparse", "linear-system", "conjugate-gradient", "ldl", "kkt"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["splitcone"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
