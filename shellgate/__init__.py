"""shellgate - permission and safety gate for agent-proposed shell commands.

The engine decides whether a shell command proposed by an autonomous agent
should run, be confirmed by a human, or be refused, and interprets exit codes
of commands once they have run.

Quick Start:
    pip install -e .
    shellgate check "git status"
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
