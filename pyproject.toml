[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fmitf"
version = "0.1.0"
description = "Semantic analysis, control flow graphs and dataflow analyses for chopped distributed transactions"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "transactions",
    "serializability",
    "compiler",
    "control-flow-graph",
    "dataflow",
    "static-analysis",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fmitf"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
