"""Gradio chat UI for caorag."""

from .app import CaoQueryClient, build_interface, launch

__all__ = ["CaoQueryClient", "build_interface", "launch"]
