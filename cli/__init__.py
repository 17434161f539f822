"""
Video Generation Tester CLI Tools

Command-line rendering for the generation registry.

Tools:
- display: status lines for generations as they change
"""

from .display import RegistryPrinter, format_generation

__all__ = ["RegistryPrinter", "format_generation"]
