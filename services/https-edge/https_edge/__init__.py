"""HTTP -> HTTPS edge: a plaintext redirect listener next to a TLS listener."""

__version__ = "0.1.0"
