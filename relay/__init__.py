"""Rendezvous relay for WebRTC-style peer signaling."""

__version__ = "0.1.0"
