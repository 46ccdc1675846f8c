"""
gptrepo - flatten a repository into one text file for LLM context.

This package walks a directory tree, drops files matching the wildcard
patterns of a ``.gptignore`` file, and concatenates the rest into a single
delimited artifact that can be pasted in front of a prompt.
"""

__version__ = "0.1.0"
