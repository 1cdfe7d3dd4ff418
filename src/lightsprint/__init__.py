"""
Lightsprint for Claude Code

Mirrors Claude Code task activity onto a Lightsprint project board and gates
plan-mode exits behind a browser review.
"""

__version__ = "0.4.0"
