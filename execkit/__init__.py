"""Launch, stream and control commands locally, in containers, over SSH or via sudo."""

__version__ = "0.1.0"