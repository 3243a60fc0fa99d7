"""Semantic analysis, control flow graphs and dataflow analyses for chopped transactions."""

__version__ = "0.1.0"