"""ProtoFlow: reviewable, step-by-step SDLC artifact generation."""

__version__ = "0.1.0"
