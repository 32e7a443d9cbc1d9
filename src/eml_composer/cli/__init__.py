"""
CLI module for message composition.

Provides a command-line tool to build, print and send messages.
"""

from eml_composer.cli.compose import main as compose_main

__all__ = ["compose_main"]
