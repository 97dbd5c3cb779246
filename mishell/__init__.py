"""An interactive command shell with pipelines, redirections, heredocs and built-ins."""

__version__ = "0.1.0"
__all__ = [
    "builtins",
    "cmdqueue",
    "environment",
    "executor",
    "parser",
    "pathsearch",
    "redirection",
    "sentence",
    "shell",
    "textutil",
]