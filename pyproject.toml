[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agesir"
version = "0.1.0"
description = "Age-structured SIR epidemic model with interventions, parameter management and stochastic optimisers for calibration"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "epidemiology",
    "SIR",
    "age-structured",
    "calibration",
    "MCMC",
    "hill climbing",
    "particle swarm",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["agesir"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
