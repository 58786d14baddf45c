"""Build IIIF Presentation 2.1 manifests from digital-object result sets."""

__version__ = "0.3.0"
