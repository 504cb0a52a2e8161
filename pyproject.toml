[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "halokit"
version = "0.1.0"
description = "Halo-finder building blocks: potentials, NFW scale radii, halo shapes, parent assignment, merger descendants and cosmic time."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "astronomy",
    "cosmology",
    "dark matter",
    "halo finder",
    "n-body",
    "subhalos",
    "merger tree",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
halokit-find-parents = "halokit.hlist:main"

[tool.hatch.build.targets.wheel]
packages = ["halokit"]

[tool.hatch.build.targets.sdist]
include = [
    "halokit",
    "tests",
    "pyproject.toml",
]

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
